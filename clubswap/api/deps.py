"""API dependencies for authentication and services."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.core.exceptions import AuthenticationError
from clubswap.core.security import verify_token
from clubswap.database import get_db
from clubswap.models.user import User
from clubswap.services.booking_service import BookingService, booking_service
from clubswap.services.review_service import ReviewService, review_service

# Security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the identity provider's JWT to the user's profile row."""
    payload = verify_token(credentials.credentials)
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token payload")
    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Invalid token subject") from None

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


def get_booking_service() -> BookingService:
    return booking_service


def get_review_service() -> ReviewService:
    return review_service


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
