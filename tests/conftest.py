"""Test fixtures and configuration."""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from dress_pricing.catalog.calculators import LocalPriceCalculator, RuleCatalog
from dress_pricing.schemas.calculation import PriceBreakdown, PriceCalculation
from dress_pricing.schemas.catalog import Dress
from dress_pricing.schemas.rule import PricingRule, PricingStrategy


@pytest.fixture
def make_rule():
    """Factory for pricing rules with sensible defaults."""

    def _make(
        id: str = "rule-1",
        strategy: str = "per_day",
        priority: int = 0,
        is_active: bool = True,
        config: Optional[dict] = None,
        applies_to: Optional[dict] = None,
        service_type_id: Optional[str] = None,
        updated_at: Optional[str] = None,
    ) -> PricingRule:
        return PricingRule.model_validate({
            "id": id,
            "name": f"{strategy} rule",
            "strategy": strategy,
            "priority": priority,
            "is_active": is_active,
            "calculation_config": config,
            "applies_to": applies_to,
            "service_type_id": service_type_id,
            "updated_at": updated_at,
        })

    return _make


@pytest.fixture
def dress():
    """Dress rented 100 HT / 120 TTC per day."""
    return Dress(
        id="dress-1",
        name="Ivory lace",
        type_id="wedding",
        price_ht=Decimal("1500"),
        price_ttc=Decimal("1800"),
        price_per_day_ht=Decimal("100"),
        price_per_day_ttc=Decimal("120"),
    )


@pytest.fixture
def tiered_rule(make_rule):
    """0% for 1-3 days, 10% off from 4 days."""
    return make_rule(
        id="tiered",
        strategy="tiered",
        priority=5,
        config={
            "tiers": [
                {"min_days": 1, "max_days": 3, "discount_percentage": 0},
                {"min_days": 4, "max_days": None, "discount_percentage": 10},
            ],
        },
    )


@pytest.fixture
def dresses():
    return {
        "dress-1": Dress(id="dress-1", type_id="wedding", price_per_day_ht=Decimal("100"), price_per_day_ttc=Decimal("120")),
        "dress-2": Dress(id="dress-2", type_id="evening", price_per_day_ht=Decimal("50"), price_per_day_ttc=Decimal("60")),
    }


@pytest.fixture
def local_calculator(tiered_rule, dresses):
    return LocalPriceCalculator(RuleCatalog([tiered_rule]), dresses)


@pytest.fixture
def make_calculation():
    """Factory for a finished PriceCalculation."""

    def _make(ttc: str = "240.00", ht: str = "200.00", days: int = 2) -> PriceCalculation:
        return PriceCalculation(
            strategy_used=PricingStrategy.PER_DAY,
            base_price_ht=Decimal(ht),
            base_price_ttc=Decimal(ttc),
            final_price_ht=Decimal(ht),
            final_price_ttc=Decimal(ttc),
            duration_days=days,
            breakdown=PriceBreakdown(
                rule_id="rule-1",
                strategy=PricingStrategy.PER_DAY,
                tax_rate=Decimal("0.20"),
            ),
        )

    return _make


@pytest.fixture
def june_first():
    return date(2026, 6, 1)  # a Monday, in summer
