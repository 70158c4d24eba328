"""Fee calculator and rental pricing."""

from decimal import Decimal

import pytest

from clubswap.config import Settings
from clubswap.core.exceptions import ValidationError
from clubswap.services.fee_service import (
    FeeCalculator,
    FeeConfig,
    calculate_rental_fee,
    to_cents,
)


@pytest.fixture
def calculator():
    return FeeCalculator(FeeConfig())


class TestCalculateFees:
    def test_nine_day_rental(self, calculator):
        """$610 rental: 12% platform fee, 2.9% + $0.30 processor fee."""
        fees = calculator.calculate_fees(Decimal("610.00"))

        assert fees.platform_fee == Decimal("73.20")
        assert fees.service_fee == Decimal("17.99")
        assert fees.total_charge == Decimal("627.99")
        assert fees.owner_earnings == Decimal("536.80")

    def test_owner_earnings_and_platform_fee_sum_to_amount(self, calculator):
        for raw in ("10.05", "33.33", "0.01", "1234.56"):
            fees = calculator.calculate_fees(Decimal(raw))
            assert fees.owner_earnings + fees.platform_fee == fees.rental_amount

    def test_half_up_rounding(self, calculator):
        # 12% of 10.05 is 1.206
        fees = calculator.calculate_fees(Decimal("10.05"))
        assert fees.platform_fee == Decimal("1.21")
        assert fees.owner_earnings == Decimal("8.84")

    def test_zero_amount_still_carries_fixed_fee(self, calculator):
        fees = calculator.calculate_fees(Decimal("0"))
        assert fees.platform_fee == Decimal("0.00")
        assert fees.processor_fee == Decimal("0.30")
        assert fees.total_charge == Decimal("0.30")

    def test_negative_amount_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate_fees(Decimal("-1"))

    def test_custom_config(self):
        calculator = FeeCalculator(
            FeeConfig(
                platform_fee_percent=Decimal("10"),
                processor_fee_percent=Decimal("0"),
                processor_fixed_fee=Decimal("0"),
            )
        )
        fees = calculator.calculate_fees(Decimal("200"))
        assert fees.platform_fee == Decimal("20.00")
        assert fees.total_charge == Decimal("200.00")

    def test_config_from_settings(self):
        settings = Settings(platform_fee_percent=Decimal("15"), processor_fixed_fee=Decimal("0.25"))
        config = FeeConfig.from_settings(settings)
        assert config.platform_fee_percent == Decimal("15")
        assert config.processor_fixed_fee == Decimal("0.25")
        assert config.processor_fee_percent == Decimal("2.9")


class TestRentalFee:
    def test_weeks_and_remainder_days(self):
        assert calculate_rental_fee(Decimal("70"), Decimal("470"), 9) == Decimal("610.00")

    def test_exact_weeks(self):
        assert calculate_rental_fee(Decimal("70"), Decimal("470"), 14) == Decimal("940.00")

    def test_without_weekly_rate(self):
        assert calculate_rental_fee(Decimal("45"), None, 8) == Decimal("360.00")

    def test_short_rental_ignores_weekly_rate(self):
        assert calculate_rental_fee(Decimal("70"), Decimal("470"), 3) == Decimal("210.00")

    def test_negative_days_rejected(self):
        with pytest.raises(ValidationError):
            calculate_rental_fee(Decimal("70"), None, -1)


def test_to_cents():
    assert to_cents(Decimal("2.675")) == Decimal("2.68")
    assert to_cents(Decimal("2.665")) == Decimal("2.67")
