"""Strategy evaluators: one function per pricing strategy.

Each evaluator turns a rule's config and the booking (dress, duration) into
an immutable PriceCalculation. Amounts are computed on the side the rule
reads the dress price from (HT or TTC); the other side is derived by a
single tax conversion of the final total.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Optional

from dress_pricing.config import settings
from dress_pricing.errors import InvalidRuleConfig, NoMatchingTier, PricingError
from dress_pricing.money import (
    apply_discount,
    ht_to_ttc,
    round_money,
    round_to_unit,
    ttc_to_ht,
)
from dress_pricing.schemas.calculation import DailyPriceBreakdown, PriceBreakdown, PriceCalculation
from dress_pricing.schemas.catalog import Dress
from dress_pricing.schemas.rule import (
    PERIOD_DAYS,
    BasePriceSource,
    DressPriceConfig,
    FixedPriceConfig,
    FlatRateConfig,
    PerDayConfig,
    PricingRule,
    PricingStrategy,
    TaxConfig,
    TieredConfig,
)

Evaluator = Callable[[PricingRule, Dress, int, date], PriceCalculation]


def _tax_rate(config: TaxConfig) -> Decimal:
    return settings.tax_rate if config.tax_rate is None else config.tax_rate


def _pair(amount: Decimal, source: BasePriceSource, config: TaxConfig) -> tuple[Decimal, Decimal]:
    """(HT, TTC) for an amount expressed on ``source``."""
    amount = round_money(amount)
    if not config.apply_tax:
        return amount, amount
    rate = _tax_rate(config)
    if source is BasePriceSource.HT:
        return amount, ht_to_ttc(amount, rate)
    return ttc_to_ht(amount, rate), amount


def _unit_price(dress: Dress, config: DressPriceConfig) -> Decimal:
    """The dress per-day price on the side the rule reads from."""
    rate = _tax_rate(config)
    if config.base_price_source is BasePriceSource.HT:
        if dress.price_per_day_ht is not None:
            return round_money(dress.price_per_day_ht)
        if dress.price_per_day_ttc is not None:
            return ttc_to_ht(dress.price_per_day_ttc, rate)
    else:
        if dress.price_per_day_ttc is not None:
            return round_money(dress.price_per_day_ttc)
        if dress.price_per_day_ht is not None:
            return ht_to_ttc(dress.price_per_day_ht, rate)
    raise PricingError(f"Dress {dress.id} has no per-day price")


def _apply_rounding(amount: Decimal, config: DressPriceConfig) -> Decimal:
    if config.rounding is None:
        return amount
    return round_to_unit(amount, config.rounding.value)


def _daily_lines(
    start: date,
    duration_days: int,
    unit_ht: Decimal,
    unit_ttc: Decimal,
    discount: Optional[Decimal] = None,
) -> list[DailyPriceBreakdown]:
    if discount:
        unit_ht, unit_ttc = apply_discount(unit_ht, discount), apply_discount(unit_ttc, discount)
    return [
        DailyPriceBreakdown(
            day=i + 1,
            date=start + timedelta(days=i),
            price_ht=unit_ht,
            price_ttc=unit_ttc,
            discount_percentage=discount,
        )
        for i in range(duration_days)
    ]


def evaluate_per_day(rule: PricingRule, dress: Dress, duration_days: int, start: date) -> PriceCalculation:
    """Dress per-day price × number of days."""
    config: PerDayConfig = rule.calculation_config
    source = config.base_price_source
    unit = _unit_price(dress, config)
    raw = round_money(unit * duration_days)
    final = _apply_rounding(raw, config)

    unit_ht, unit_ttc = _pair(unit, source, config)
    base_ht, base_ttc = _pair(raw, source, config)
    final_ht, final_ttc = _pair(final, source, config)

    return PriceCalculation(
        strategy_used=PricingStrategy.PER_DAY,
        base_price_ht=base_ht,
        base_price_ttc=base_ttc,
        final_price_ht=final_ht,
        final_price_ttc=final_ttc,
        duration_days=duration_days,
        breakdown=PriceBreakdown(
            rule_id=rule.id,
            rule_name=rule.name,
            strategy=rule.strategy,
            tax_rate=_tax_rate(config),
            apply_tax=config.apply_tax,
            unit_price_ht=unit_ht,
            unit_price_ttc=unit_ttc,
            periods=duration_days,
            period_days=1,
            rounding=config.rounding.value if config.rounding else None,
            days=_daily_lines(start, duration_days, unit_ht, unit_ttc),
        ),
    )


def evaluate_tiered(rule: PricingRule, dress: Dress, duration_days: int, start: date) -> PriceCalculation:
    """Per-day total discounted by the first tier covering the duration."""
    config: TieredConfig = rule.calculation_config
    if not config.tiers:
        raise InvalidRuleConfig("tiers", strategy=rule.strategy.value)

    tier = next((t for t in config.tiers if t.contains(duration_days)), None)
    if tier is None:
        raise NoMatchingTier(duration_days, rule_id=rule.id)

    source = config.base_price_source
    unit = _unit_price(dress, config)
    raw = round_money(unit * duration_days)
    final = _apply_rounding(apply_discount(raw, tier.discount_percentage), config)

    unit_ht, unit_ttc = _pair(unit, source, config)
    base_ht, base_ttc = _pair(raw, source, config)
    final_ht, final_ttc = _pair(final, source, config)

    return PriceCalculation(
        strategy_used=PricingStrategy.TIERED,
        base_price_ht=base_ht,
        base_price_ttc=base_ttc,
        final_price_ht=final_ht,
        final_price_ttc=final_ttc,
        duration_days=duration_days,
        discount_applied=tier.discount_percentage,
        breakdown=PriceBreakdown(
            rule_id=rule.id,
            rule_name=rule.name,
            strategy=rule.strategy,
            tax_rate=_tax_rate(config),
            apply_tax=config.apply_tax,
            unit_price_ht=unit_ht,
            unit_price_ttc=unit_ttc,
            periods=duration_days,
            period_days=1,
            tier_min_days=tier.min_days,
            tier_max_days=tier.max_days,
            rounding=config.rounding.value if config.rounding else None,
            days=_daily_lines(start, duration_days, unit_ht, unit_ttc, tier.discount_percentage),
        ),
    )


def evaluate_flat_rate(rule: PricingRule, dress: Dress, duration_days: int, start: date) -> PriceCalculation:
    """Per-day price × multiplier for each started period (day/weekend/week/month)."""
    config: FlatRateConfig = rule.calculation_config
    if config.applies_to_period is None:
        raise InvalidRuleConfig("applies_to_period", strategy=rule.strategy.value)
    if config.fixed_multiplier is None:
        raise InvalidRuleConfig("fixed_multiplier", strategy=rule.strategy.value)

    period_days = config.period_days or PERIOD_DAYS[config.applies_to_period]
    periods = max(math.ceil(duration_days / period_days), 1)  # partial period = full period

    source = config.base_price_source
    unit = _unit_price(dress, config)
    raw = round_money(unit * duration_days)
    final = _apply_rounding(round_money(unit * config.fixed_multiplier * periods), config)

    unit_ht, unit_ttc = _pair(unit, source, config)
    base_ht, base_ttc = _pair(raw, source, config)
    final_ht, final_ttc = _pair(final, source, config)

    return PriceCalculation(
        strategy_used=PricingStrategy.FLAT_RATE,
        base_price_ht=base_ht,
        base_price_ttc=base_ttc,
        final_price_ht=final_ht,
        final_price_ttc=final_ttc,
        duration_days=duration_days,
        breakdown=PriceBreakdown(
            rule_id=rule.id,
            rule_name=rule.name,
            strategy=rule.strategy,
            tax_rate=_tax_rate(config),
            apply_tax=config.apply_tax,
            unit_price_ht=unit_ht,
            unit_price_ttc=unit_ttc,
            periods=periods,
            period_days=period_days,
            multiplier=config.fixed_multiplier,
            rounding=config.rounding.value if config.rounding else None,
        ),
    )


def evaluate_fixed_price(rule: PricingRule, dress: Dress, duration_days: int, start: date) -> PriceCalculation:
    """Absolute price; the missing side is derived by tax conversion."""
    config: FixedPriceConfig = rule.calculation_config
    if config.fixed_amount_ht is None and config.fixed_amount_ttc is None:
        raise InvalidRuleConfig("fixed_amount_ht", strategy=rule.strategy.value)

    if config.fixed_amount_ht is not None and config.fixed_amount_ttc is not None:
        final_ht, final_ttc = round_money(config.fixed_amount_ht), round_money(config.fixed_amount_ttc)
    elif config.fixed_amount_ht is not None:
        final_ht, final_ttc = _pair(config.fixed_amount_ht, BasePriceSource.HT, config)
    else:
        final_ht, final_ttc = _pair(config.fixed_amount_ttc, BasePriceSource.TTC, config)

    return PriceCalculation(
        strategy_used=PricingStrategy.FIXED_PRICE,
        base_price_ht=final_ht,
        base_price_ttc=final_ttc,
        final_price_ht=final_ht,
        final_price_ttc=final_ttc,
        duration_days=duration_days,
        breakdown=PriceBreakdown(
            rule_id=rule.id,
            rule_name=rule.name,
            strategy=rule.strategy,
            tax_rate=_tax_rate(config),
            apply_tax=config.apply_tax,
        ),
    )


EVALUATORS: dict[PricingStrategy, Evaluator] = {
    PricingStrategy.PER_DAY: evaluate_per_day,
    PricingStrategy.TIERED: evaluate_tiered,
    PricingStrategy.FLAT_RATE: evaluate_flat_rate,
    PricingStrategy.FIXED_PRICE: evaluate_fixed_price,
}


def evaluate(rule: PricingRule, dress: Dress, duration_days: int, start: date) -> PriceCalculation:
    """Run the evaluator of the rule's strategy."""
    return EVALUATORS[rule.strategy](rule, dress, duration_days, start)
