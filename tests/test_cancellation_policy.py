"""Cancellation policy refunds."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from clubswap.core.exceptions import ValidationError
from clubswap.domain.cancellation_policy import (
    CancellationPolicy,
    calculate_refund_amount,
    calculate_refund_percentage,
    days_until_start,
    get_policy_description,
)

START = date(2026, 6, 20)
TOTAL = Decimal("627.99")


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 6, day, hour, tzinfo=UTC)


class TestDaysUntilStart:
    def test_floors_partial_days(self):
        # 1.5 days before midnight of the start date
        assert days_until_start(START, at(18)) == 1

    def test_midnight_exact(self):
        assert days_until_start(START, at(18, 0)) == 2

    def test_after_start_is_negative(self):
        assert days_until_start(START, at(21)) == -2

    def test_naive_datetime_taken_as_utc(self):
        assert days_until_start(START, datetime(2026, 6, 18, 12)) == 1


class TestRefunds:
    @pytest.mark.parametrize(
        "policy, now, expected",
        [
            ("flexible", at(18, 0), TOTAL),
            ("flexible", at(18, 12), TOTAL),
            ("flexible", at(19, 12), Decimal("0.00")),
            ("moderate", at(15, 0), TOTAL),
            ("moderate", at(17, 0), Decimal("0.00")),
            ("strict", at(10, 0), Decimal("314.00")),
            ("strict", at(14, 0), Decimal("0.00")),
        ],
    )
    def test_refund_table(self, policy, now, expected):
        assert calculate_refund_amount(policy, START, now, TOTAL) == expected

    def test_refund_after_start_is_zero(self):
        assert calculate_refund_percentage(CancellationPolicy.FLEXIBLE, START, at(22)) == Decimal("0")

    def test_unknown_policy(self):
        with pytest.raises(ValidationError):
            calculate_refund_amount("super_strict", START, at(1), TOTAL)

    def test_description(self):
        assert "50% refund" in get_policy_description("strict")
        assert "1 day" in get_policy_description(CancellationPolicy.FLEXIBLE)
