"""Select the applicable rule and price a dress booking."""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from dress_pricing.pricing.dates import (
    DateLike,
    calculate_duration_days,
    calculate_duration_hours,
    season_for,
    validate_date_range,
    weekday_for,
)
from dress_pricing.pricing.selector import RuleSelector
from dress_pricing.pricing.strategies import evaluate
from dress_pricing.schemas.calculation import BookingContext, PriceCalculation
from dress_pricing.schemas.catalog import Dress
from dress_pricing.schemas.rule import PricingRule

logger = structlog.get_logger()


class PricingEngine:
    """Rule selection + strategy evaluation for one dress and one period."""

    def __init__(self, selector: Optional[RuleSelector] = None):
        self.selector = selector or RuleSelector()

    def build_context(
        self,
        dress: Dress,
        start_date: DateLike,
        end_date: DateLike,
        customer_type: Optional[str] = None,
        service_type: Optional[str] = None,
        service_type_id: Optional[str] = None,
    ) -> BookingContext:
        """Derive the matching context of a booking.

        Weekday and season are those of the start date.
        """
        return BookingContext(
            dress_id=dress.id,
            dress_type=dress.type_id,
            customer_type=customer_type,
            season=season_for(start_date),
            weekday=weekday_for(start_date),
            service_type=service_type,
            service_type_id=service_type_id,
            duration_days=calculate_duration_days(start_date, end_date),
            duration_hours=calculate_duration_hours(start_date, end_date),
        )

    def calculate(
        self,
        rules: Sequence[PricingRule],
        dress: Dress,
        start_date: DateLike,
        end_date: DateLike,
        pricing_rule_id: Optional[str] = None,
        customer_type: Optional[str] = None,
        service_type: Optional[str] = None,
        service_type_id: Optional[str] = None,
    ) -> PriceCalculation:
        """Price ``dress`` between ``start_date`` and ``end_date``.

        Args:
            rules: Rule catalog snapshot
            dress: Dress being rented
            start_date: Rental start (date, datetime or ISO string)
            end_date: Rental end, strictly after start
            pricing_rule_id: Force this rule instead of matching
            customer_type: Optional customer segment for matching
            service_type: Optional service type code for matching
            service_type_id: Optional service type id for matching

        Returns:
            PriceCalculation with HT/TTC totals and breakdown

        Raises:
            InvalidDateRange, RuleNotFound, NoApplicableRule,
            NoMatchingTier, InvalidRuleConfig
        """
        start, _ = validate_date_range(start_date, end_date)
        context = self.build_context(
            dress,
            start_date,
            end_date,
            customer_type=customer_type,
            service_type=service_type,
            service_type_id=service_type_id,
        )
        rule = self.selector.select(rules, context, pricing_rule_id=pricing_rule_id)
        result = evaluate(rule, dress, context.duration_days, start.date())

        logger.info(
            "price_calculated",
            dress_id=dress.id,
            rule_id=rule.id,
            strategy=rule.strategy.value,
            duration_days=context.duration_days,
            final_price_ht=str(result.final_price_ht),
            final_price_ttc=str(result.final_price_ttc),
        )
        return result
