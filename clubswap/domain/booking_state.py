"""Booking state machine."""

from enum import Enum

from clubswap.core.exceptions import InvalidBookingStatus


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"


class BookingEvent(str, Enum):
    """Events that move a booking between states."""

    APPROVE = "approve"
    DECLINE = "decline"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingEvent], BookingStatus] = {
    (BookingStatus.PENDING, BookingEvent.APPROVE): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingEvent.DECLINE): BookingStatus.DECLINED,
    (BookingStatus.PENDING, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.START): BookingStatus.IN_PROGRESS,
    (BookingStatus.CONFIRMED, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.CONFIRMED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.IN_PROGRESS, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.IN_PROGRESS, BookingEvent.CANCEL): BookingStatus.CANCELLED,
}

# Who may trigger each event ("system" covers scheduled tasks)
EVENT_ACTORS: dict[BookingEvent, frozenset[str]] = {
    BookingEvent.APPROVE: frozenset({"owner"}),
    BookingEvent.DECLINE: frozenset({"owner"}),
    BookingEvent.START: frozenset({"owner", "system"}),
    BookingEvent.COMPLETE: frozenset({"owner"}),
    BookingEvent.CANCEL: frozenset({"renter", "owner"}),
}

TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.DECLINED}
)

# Statuses that hold the listing's dates
BLOCKING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS})


def initial_status(booking_mode: str) -> BookingStatus:
    """Instant-book listings skip owner approval."""
    return BookingStatus.CONFIRMED if booking_mode == "instant" else BookingStatus.PENDING


def next_status(current: str | BookingStatus, event: str | BookingEvent) -> BookingStatus:
    """Resolve the target status for an event, rejecting illegal moves."""
    current = BookingStatus(current)
    event = BookingEvent(event)
    target = BOOKING_TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidBookingStatus(
            f"Cannot {event.value} a booking that is {current.value}"
        )
    return target


def is_allowed_actor(event: str | BookingEvent, role: str | None) -> bool:
    return role in EVENT_ACTORS[BookingEvent(event)]
