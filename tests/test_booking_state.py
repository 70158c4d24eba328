"""Booking state machine."""

import pytest

from clubswap.core.exceptions import InvalidBookingStatus
from clubswap.domain.booking_state import (
    BOOKING_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingEvent,
    BookingStatus,
    initial_status,
    is_allowed_actor,
    next_status,
)


def test_initial_status():
    assert initial_status("instant") == BookingStatus.CONFIRMED
    assert initial_status("request") == BookingStatus.PENDING


@pytest.mark.parametrize(
    "current, event, expected",
    [
        ("pending", "approve", BookingStatus.CONFIRMED),
        ("pending", "decline", BookingStatus.DECLINED),
        ("pending", "cancel", BookingStatus.CANCELLED),
        ("confirmed", "start", BookingStatus.IN_PROGRESS),
        ("confirmed", "complete", BookingStatus.COMPLETED),
        ("confirmed", "cancel", BookingStatus.CANCELLED),
        ("in_progress", "complete", BookingStatus.COMPLETED),
        ("in_progress", "cancel", BookingStatus.CANCELLED),
    ],
)
def test_legal_transitions(current, event, expected):
    assert next_status(current, event) == expected


@pytest.mark.parametrize(
    "current, event",
    [
        ("confirmed", "approve"),
        ("pending", "complete"),
        ("pending", "start"),
        ("in_progress", "decline"),
    ],
)
def test_illegal_transitions(current, event):
    with pytest.raises(InvalidBookingStatus, match=f"Cannot {event}"):
        next_status(current, event)


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert not any(current == status for current, _ in BOOKING_TRANSITIONS)


def test_actors():
    assert is_allowed_actor(BookingEvent.APPROVE, "owner")
    assert not is_allowed_actor(BookingEvent.APPROVE, "renter")
    assert is_allowed_actor(BookingEvent.CANCEL, "renter")
    assert is_allowed_actor(BookingEvent.CANCEL, "owner")
    assert is_allowed_actor(BookingEvent.START, "system")
    assert not is_allowed_actor(BookingEvent.COMPLETE, "system")
    assert not is_allowed_actor(BookingEvent.CANCEL, None)
