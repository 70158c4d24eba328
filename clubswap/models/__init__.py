"""Database models."""

from clubswap.models.booking import Booking
from clubswap.models.listing import Listing
from clubswap.models.notification import Notification
from clubswap.models.review import Review
from clubswap.models.user import User

__all__ = [
    # User
    "User",
    # Listing
    "Listing",
    # Booking
    "Booking",
    # Review
    "Review",
    # Notification
    "Notification",
]
