"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from clubswap.api.v1 import bookings, reviews

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Reviews
api_router.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])
