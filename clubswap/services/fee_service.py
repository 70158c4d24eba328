"""Fee calculation service.

BUSINESS RULES:
- Platform fee is a percentage of the rental amount, deducted from the owner's earnings
- Processor fee (percentage + fixed) is passed through to the renter as the service fee
- Every amount is rounded half-up to cents
- Fee percentages come from an explicit FeeConfig, never from process globals
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from clubswap.core.exceptions import ValidationError

if TYPE_CHECKING:
    from clubswap.config import Settings

CENTS = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    """Round a money amount half-up to cents."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeConfig:
    """Fee percentages and fixed fees."""

    platform_fee_percent: Decimal = Decimal("12")
    processor_fee_percent: Decimal = Decimal("2.9")
    processor_fixed_fee: Decimal = Decimal("0.30")

    @classmethod
    def from_settings(cls, settings: Settings) -> FeeConfig:
        return cls(
            platform_fee_percent=Decimal(settings.platform_fee_percent),
            processor_fee_percent=Decimal(settings.processor_fee_percent),
            processor_fixed_fee=Decimal(settings.processor_fixed_fee),
        )


@dataclass(frozen=True)
class FeeBreakdown:
    """Fees for one rental amount."""

    rental_amount: Decimal
    platform_fee: Decimal
    processor_fee: Decimal
    owner_earnings: Decimal
    total_charge: Decimal

    @property
    def service_fee(self) -> Decimal:
        """The processor fee as charged to the renter."""
        return self.processor_fee


class FeeCalculator:
    """Pure fee calculator bound to one FeeConfig."""

    def __init__(self, config: FeeConfig) -> None:
        self.config = config

    def calculate_fees(self, rental_amount: Decimal) -> FeeBreakdown:
        """Split a rental amount into platform fee, processor fee and payouts.

        owner_earnings and total_charge are derived from the already-rounded
        fees so that owner_earnings + platform_fee == rental_amount exactly.

        Args:
            rental_amount: Rental amount in currency units (CAD)

        Returns:
            FeeBreakdown with every amount at cent precision
        """
        amount = to_cents(rental_amount)
        if amount < 0:
            raise ValidationError("Rental amount cannot be negative")

        platform_fee = to_cents(amount * self.config.platform_fee_percent / Decimal("100"))
        processor_fee = to_cents(
            amount * self.config.processor_fee_percent / Decimal("100")
            + self.config.processor_fixed_fee
        )

        return FeeBreakdown(
            rental_amount=amount,
            platform_fee=platform_fee,
            processor_fee=processor_fee,
            owner_earnings=amount - platform_fee,
            total_charge=amount + processor_fee,
        )


def calculate_rental_fee(
    daily_rate: Decimal,
    weekly_rate: Decimal | None,
    rental_days: int,
) -> Decimal:
    """Price a rental: whole weeks at the weekly rate, remaining days at the daily rate.

    Without a weekly rate every day is charged at the daily rate.
    """
    if rental_days < 0:
        raise ValidationError("Rental days cannot be negative")

    if weekly_rate:
        weeks, days = divmod(rental_days, 7)
        return to_cents(Decimal(weekly_rate) * weeks + Decimal(daily_rate) * days)
    return to_cents(Decimal(daily_rate) * rental_days)
