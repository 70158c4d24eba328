"""Cancellation policy domain logic.

Policies:
- flexible: Full refund up to 1 day before the rental starts, nothing after
- moderate: Full refund up to 5 days before, nothing after
- strict: 50% refund up to 7 days before, nothing after
"""

import math
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from clubswap.core.exceptions import ValidationError

CENTS = Decimal("0.01")


class CancellationPolicy(str, Enum):
    """Cancellation policy types."""

    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"


# Refund rules: list of (min_days_until_start, refund_percentage)
# Evaluated in order - first match wins
POLICY_RULES: dict[CancellationPolicy, list[tuple[int, Decimal]]] = {
    CancellationPolicy.FLEXIBLE: [
        (1, Decimal("100")),
    ],
    CancellationPolicy.MODERATE: [
        (5, Decimal("100")),
    ],
    CancellationPolicy.STRICT: [
        (7, Decimal("50")),
    ],
}


def _coerce_policy(policy: str | CancellationPolicy) -> CancellationPolicy:
    try:
        return CancellationPolicy(policy)
    except ValueError:
        raise ValidationError(f"Unknown cancellation policy: {policy}") from None


def days_until_start(start_date: date, now: datetime) -> int:
    """Whole days from ``now`` to midnight UTC of ``start_date``, floored.

    Naive datetimes are taken as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    return math.floor((start - now).total_seconds() / 86400)


def calculate_refund_percentage(
    policy: str | CancellationPolicy,
    start_date: date,
    now: datetime,
) -> Decimal:
    """Calculate refund percentage based on policy and timing.

    Args:
        policy: The cancellation policy type
        start_date: First day of the rental
        now: Moment of cancellation

    Returns:
        Decimal: Refund percentage (0-100)
    """
    policy = _coerce_policy(policy)
    days_before = days_until_start(start_date, now)

    for min_days, refund_pct in POLICY_RULES[policy]:
        if days_before >= min_days:
            return refund_pct

    return Decimal("0")


def calculate_refund_amount(
    policy: str | CancellationPolicy,
    start_date: date,
    now: datetime,
    total_amount: Decimal,
) -> Decimal:
    """Calculate the refund owed on ``total_amount``, rounded half-up to cents."""
    refund_pct = calculate_refund_percentage(policy, start_date, now)
    refund = Decimal(total_amount) * refund_pct / Decimal("100")
    return refund.quantize(CENTS, rounding=ROUND_HALF_UP)


def get_policy_description(policy: str | CancellationPolicy) -> str:
    """Get human-readable policy description."""
    descriptions = {
        CancellationPolicy.FLEXIBLE: (
            "Full refund if cancelled at least 1 day before pickup. "
            "No refund after that."
        ),
        CancellationPolicy.MODERATE: (
            "Full refund if cancelled at least 5 days before pickup. "
            "No refund after that."
        ),
        CancellationPolicy.STRICT: (
            "50% refund if cancelled at least 7 days before pickup. "
            "No refund after that."
        ),
    }
    return descriptions[_coerce_policy(policy)]
