"""Core utilities and security modules."""

from clubswap.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DuplicateReview,
    InvalidBookingStatus,
    ListingNotAvailable,
    NotFoundError,
    PaymentDeclined,
    PaymentError,
    PaymentGatewayUnavailable,
    ValidationError,
)
from clubswap.core.security import verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DuplicateReview",
    "InvalidBookingStatus",
    "ListingNotAvailable",
    "NotFoundError",
    "PaymentDeclined",
    "PaymentError",
    "PaymentGatewayUnavailable",
    "ValidationError",
    "verify_token",
]
