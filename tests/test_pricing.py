"""Unit tests for the NTA fare engine."""

from decimal import Decimal

import pytest

from src.domain.enums import RateTier
from src.domain.pricing import (
    TARIFFS,
    FareEngine,
    TariffBOnly,
    TwoBandTariff,
    compute_fare,
    strategy_for,
)


class TestTariffStrategies:
    def test_standard_and_premium_use_two_bands(self):
        assert isinstance(strategy_for(TARIFFS[RateTier.STANDARD]), TwoBandTariff)
        assert isinstance(strategy_for(TARIFFS[RateTier.PREMIUM]), TwoBandTariff)

    def test_special_skips_tariff_a(self):
        assert isinstance(strategy_for(TARIFFS[RateTier.SPECIAL]), TariffBOnly)

    def test_per_minute_rates_are_carried(self):
        assert TARIFFS[RateTier.STANDARD].tariff_a_per_minute == Decimal("0.47")
        assert TARIFFS[RateTier.PREMIUM].tariff_b_per_minute == Decimal("0.78")


class TestFareEngine:
    def setup_method(self):
        self.engine = FareEngine()

    def test_standard_within_tariff_a(self):
        fare = self.engine.compute(10, 20, RateTier.STANDARD)
        assert fare.initial_charge == Decimal("4.40")
        assert fare.tariff_a == Decimal("12.54")
        assert fare.tariff_b == Decimal("0.00")
        assert fare.total_fare == Decimal("16.94")
        assert fare.duration_minutes == 20

    def test_standard_spanning_both_tariffs(self):
        fare = self.engine.compute(20, 30, RateTier.STANDARD)
        assert fare.tariff_a == Decimal("19.80")
        assert fare.tariff_b == Decimal("7.74")
        assert fare.total_fare == Decimal("31.94")

    def test_zero_distance_is_initial_charge(self):
        fare = self.engine.compute(0, 0, RateTier.STANDARD)
        assert fare.total_fare == fare.initial_charge == Decimal("4.40")

    def test_first_half_km_is_included(self):
        fare = self.engine.compute("0.5", 2, RateTier.PREMIUM)
        assert fare.tariff_a == Decimal("0.00")
        assert fare.total_fare == Decimal("5.40")

    def test_tariff_a_ceiling_boundary(self):
        at_ceiling = self.engine.compute("15.5", 25, RateTier.STANDARD)
        assert at_ceiling.tariff_a == Decimal("19.80")
        assert at_ceiling.tariff_b == Decimal("0.00")
        assert at_ceiling.total_fare == Decimal("24.20")

        past_ceiling = self.engine.compute("15.6", 25, RateTier.STANDARD)
        assert past_ceiling.tariff_a == Decimal("19.80")
        assert past_ceiling.tariff_b == Decimal("0.17")
        assert past_ceiling.total_fare == Decimal("24.37")

    def test_premium_total_rounded_once(self):
        fare = self.engine.compute(10, 20, RateTier.PREMIUM)
        # 9.5 * 1.81 = 17.195
        assert fare.tariff_a == Decimal("17.20")
        assert fare.total_fare == Decimal("22.60")

    def test_premium_spanning_both_tariffs(self):
        fare = self.engine.compute(20, 30, RateTier.PREMIUM)
        assert fare.tariff_a == Decimal("27.15")
        assert fare.tariff_b == Decimal("9.90")
        assert fare.total_fare == Decimal("42.45")

    def test_special_bills_everything_at_tariff_b(self):
        fare = self.engine.compute(20, 30, RateTier.SPECIAL)
        assert fare.tariff_a == Decimal("0.00")
        assert fare.tariff_b == Decimal("42.90")
        assert fare.total_fare == Decimal("48.30")
        assert fare.rate_type == RateTier.SPECIAL

    @pytest.mark.parametrize("bad", [None, -3, "abc", float("nan")])
    def test_bad_distance_prices_as_zero(self, bad):
        fare = self.engine.compute(bad, None, RateTier.STANDARD)
        assert fare.total_fare == Decimal("4.40")
        assert fare.distance_km == Decimal("0.0")
        assert fare.duration_minutes == 0

    @pytest.mark.parametrize("tier", list(RateTier))
    @pytest.mark.parametrize("km", [0, 0.3, 1, 7.25, 15.5, 15.51, 42, 250])
    def test_total_never_below_initial_charge(self, tier, km):
        fare = self.engine.compute(km, 10, tier)
        assert fare.tariff_a >= 0
        assert fare.tariff_b >= 0
        assert fare.total_fare >= fare.initial_charge

    def test_distance_reported_to_one_decimal(self):
        fare = self.engine.compute("12.345", 18, RateTier.STANDARD)
        assert fare.distance_km == Decimal("12.3")


class TestQuote:
    def test_quote_selects_tier_from_pickup(self):
        engine = FareEngine()
        # Sunday midday
        fare = engine.quote(10, 20, "2026-11-08", "12:00")
        assert fare.rate_type == RateTier.PREMIUM
        assert fare.total_fare == Decimal("22.60")

    def test_quote_without_schedule_is_standard(self):
        fare = FareEngine().quote(10, 20, None, None)
        assert fare.rate_type == RateTier.STANDARD
        assert fare.total_fare == Decimal("16.94")

    def test_compute_fare_defaults_to_standard(self):
        fare = compute_fare(20, 30)
        assert fare.rate_type == RateTier.STANDARD
        assert fare.total_fare == Decimal("31.94")
