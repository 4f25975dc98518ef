"""Tests for the per-strategy price evaluators."""

from datetime import date
from decimal import Decimal

import pytest

from dress_pricing.errors import InvalidRuleConfig, NoMatchingTier, PricingError
from dress_pricing.pricing.strategies import evaluate
from dress_pricing.schemas.catalog import Dress
from dress_pricing.schemas.rule import PricingStrategy

START = date(2026, 6, 1)


class TestPerDay:
    def test_unit_times_days(self, make_rule, dress):
        """Per-day price times the number of days."""
        result = evaluate(make_rule(), dress, 3, START)
        assert result.strategy_used == PricingStrategy.PER_DAY
        assert result.final_price_ht == Decimal("300.00")
        assert result.final_price_ttc == Decimal("360.00")
        assert result.breakdown.rule_id == "rule-1"

    def test_daily_lines(self, make_rule, dress):
        """One line per rented day, dated from the start."""
        result = evaluate(make_rule(), dress, 3, START)
        days = result.breakdown.days
        assert [d.day for d in days] == [1, 2, 3]
        assert days[-1].date == date(2026, 6, 3)
        assert days[0].price_ttc == Decimal("120.00")

    def test_ttc_source(self, make_rule):
        """A TTC-sourced rule computes on TTC and derives HT."""
        dress = Dress(id="d", price_per_day_ttc=Decimal("120"))
        result = evaluate(make_rule(config={"base_price_source": "ttc"}), dress, 3, START)
        assert result.final_price_ttc == Decimal("360.00")
        assert result.final_price_ht == Decimal("300.00")

    def test_ht_source_falls_back_to_ttc_price(self, make_rule):
        """A missing HT day price is derived from TTC."""
        dress = Dress(id="d", price_per_day_ttc=Decimal("120"))
        result = evaluate(make_rule(), dress, 1, START)
        assert result.final_price_ht == Decimal("100.00")

    def test_without_tax(self, make_rule, dress):
        """apply_tax false makes HT and TTC equal."""
        result = evaluate(make_rule(config={"apply_tax": False}), dress, 3, START)
        assert result.final_price_ht == result.final_price_ttc == Decimal("300.00")

    def test_custom_tax_rate(self, make_rule, dress):
        """The rule's own tax rate is used and recorded."""
        result = evaluate(make_rule(config={"tax_rate": "0.055"}), dress, 2, START)
        assert result.final_price_ttc == Decimal("211.00")
        assert result.breakdown.tax_rate == Decimal("0.055")

    @pytest.mark.parametrize("rounding,ht,ttc", [
        (None, "99.99", "119.99"),
        ("up", "100.00", "120.00"),
        ("down", "99.00", "118.80"),
        ("nearest", "100.00", "120.00"),
    ])
    def test_rounding_applies_to_total(self, make_rule, rounding, ht, ttc):
        """Rounding applies to the total, not per day."""
        dress = Dress(id="d", price_per_day_ht=Decimal("33.33"))
        result = evaluate(make_rule(config={"rounding": rounding}), dress, 3, START)
        assert result.final_price_ht == Decimal(ht)
        assert result.final_price_ttc == Decimal(ttc)
        assert result.base_price_ht == Decimal("99.99")

    def test_dress_without_day_price(self, make_rule):
        """A dress without any day price cannot be priced."""
        with pytest.raises(PricingError):
            evaluate(make_rule(), Dress(id="bare"), 2, START)


class TestTiered:
    def test_short_booking_no_discount(self, tiered_rule, dress):
        """The 0% tier leaves the per-day total unchanged."""
        result = evaluate(tiered_rule, dress, 2, START)
        assert result.final_price_ht == Decimal("200.00")
        assert result.final_price_ttc == Decimal("240.00")
        assert result.discount_applied == Decimal("0")

    def test_long_booking_discounted(self, tiered_rule, dress):
        """The matching tier's discount applies to the total."""
        result = evaluate(tiered_rule, dress, 5, START)
        assert result.base_price_ht == Decimal("500.00")
        assert result.base_price_ttc == Decimal("600.00")
        assert result.final_price_ht == Decimal("450.00")
        assert result.final_price_ttc == Decimal("540.00")
        assert result.discount_applied == Decimal("10")
        assert result.breakdown.tier_min_days == 4
        assert result.breakdown.tier_max_days is None
        assert result.breakdown.days[0].price_ht == Decimal("90.00")

    def test_first_matching_tier_wins(self, make_rule, dress):
        """Overlapping tiers: the first listed wins."""
        rule = make_rule(strategy="tiered", config={"tiers": [
            {"min_days": 1, "max_days": 10, "discount_percentage": 5},
            {"min_days": 3, "max_days": 10, "discount_percentage": 50},
        ]})
        assert evaluate(rule, dress, 4, START).discount_applied == Decimal("5")

    def test_no_matching_tier(self, make_rule, dress):
        """A duration outside every tier raises NoMatchingTier."""
        rule = make_rule(strategy="tiered", config={"tiers": [{"min_days": 2, "max_days": 3, "discount_percentage": 0}]})
        with pytest.raises(NoMatchingTier) as exc_info:
            evaluate(rule, dress, 1, START)
        assert exc_info.value.duration_days == 1

    def test_missing_tiers(self, make_rule, dress):
        """A tiered rule without tiers is misconfigured."""
        with pytest.raises(InvalidRuleConfig) as exc_info:
            evaluate(make_rule(strategy="tiered"), dress, 2, START)
        assert exc_info.value.field == "tiers"


class TestFlatRate:
    def test_week_with_partial_period(self, make_rule, dress):
        """A started week counts as a full week."""
        rule = make_rule(strategy="flat_rate", config={"applies_to_period": "week", "fixed_multiplier": 5})
        result = evaluate(rule, dress, 9, START)
        assert result.breakdown.periods == 2
        assert result.breakdown.period_days == 7
        assert result.final_price_ht == Decimal("1000.00")
        assert result.final_price_ttc == Decimal("1200.00")
        assert result.base_price_ht == Decimal("900.00")

    def test_weekend(self, make_rule, dress):
        """A weekend is two days."""
        rule = make_rule(strategy="flat_rate", config={"applies_to_period": "weekend", "fixed_multiplier": "1.5"})
        result = evaluate(rule, dress, 3, START)
        assert result.breakdown.periods == 2
        assert result.final_price_ht == Decimal("300.00")

    def test_period_length_override(self, make_rule, dress):
        """period_days overrides the period length."""
        rule = make_rule(strategy="flat_rate", config={
            "applies_to_period": "month", "fixed_multiplier": 20, "period_days": 28,
        })
        result = evaluate(rule, dress, 29, START)
        assert result.breakdown.periods == 2
        assert result.final_price_ht == Decimal("4000.00")

    def test_default_month_is_thirty_days(self, make_rule, dress):
        """A month is 30 days by default."""
        rule = make_rule(strategy="flat_rate", config={"applies_to_period": "month", "fixed_multiplier": 20})
        assert evaluate(rule, dress, 29, START).breakdown.periods == 1

    @pytest.mark.parametrize("config,field", [
        ({"fixed_multiplier": 2}, "applies_to_period"),
        ({"applies_to_period": "day"}, "fixed_multiplier"),
    ])
    def test_missing_config(self, make_rule, dress, config, field):
        """Period and multiplier are both required."""
        with pytest.raises(InvalidRuleConfig) as exc_info:
            evaluate(make_rule(strategy="flat_rate", config=config), dress, 2, START)
        assert exc_info.value.field == field


class TestFixedPrice:
    def test_ht_only(self, make_rule, dress):
        """HT only: TTC is derived."""
        result = evaluate(make_rule(strategy="fixed_price", config={"fixed_amount_ht": 250}), dress, 4, START)
        assert result.final_price_ht == Decimal("250.00")
        assert result.final_price_ttc == Decimal("300.00")

    def test_ttc_only(self, make_rule, dress):
        """TTC only: HT is derived."""
        result = evaluate(make_rule(strategy="fixed_price", config={"fixed_amount_ttc": 90}), dress, 4, START)
        assert result.final_price_ht == Decimal("75.00")
        assert result.final_price_ttc == Decimal("90.00")

    def test_both_amounts_kept(self, make_rule, dress):
        """Both amounts given are used as is."""
        rule = make_rule(strategy="fixed_price", config={"fixed_amount_ht": 100, "fixed_amount_ttc": 110})
        result = evaluate(rule, dress, 2, START)
        assert (result.final_price_ht, result.final_price_ttc) == (Decimal("100.00"), Decimal("110.00"))

    def test_duration_ignored(self, make_rule, dress):
        """The duration does not change a fixed price."""
        rule = make_rule(strategy="fixed_price", config={"fixed_amount_ht": 250})
        assert evaluate(rule, dress, 1, START).final_price_ttc == evaluate(rule, dress, 10, START).final_price_ttc

    def test_no_amount(self, make_rule, dress):
        """A fixed price rule needs at least one amount."""
        with pytest.raises(InvalidRuleConfig) as exc_info:
            evaluate(make_rule(strategy="fixed_price"), dress, 2, START)
        assert exc_info.value.field == "fixed_amount_ht"
