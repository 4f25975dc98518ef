"""Price calculation and contract amount schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from dress_pricing.schemas.rule import PricingStrategy

ZERO = Decimal("0.00")


class BookingContext(BaseModel):
    """Everything the rule selector can match a rule against."""

    model_config = ConfigDict(frozen=True)

    dress_id: Optional[str] = None
    dress_type: Optional[str] = None
    customer_type: Optional[str] = None
    season: Optional[str] = None  # winter | spring | summer | autumn
    weekday: Optional[str] = None  # monday ... sunday
    service_type: Optional[str] = None  # service type code
    service_type_id: Optional[str] = None
    duration_days: int = 0
    duration_hours: int = 0


class PriceCalculationRequest(BaseModel):
    """Request sent to the rule catalog ``/pricing-rules/calculate``."""

    model_config = ConfigDict(frozen=True)

    dress_id: str
    start_date: dt.date
    end_date: dt.date
    pricing_rule_id: Optional[str] = None

    def query_params(self) -> dict[str, str]:
        params = {
            "dress_id": self.dress_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }
        if self.pricing_rule_id:
            params["pricing_rule_id"] = self.pricing_rule_id
        return params


class DailyPriceBreakdown(BaseModel):
    """One line per rented day."""

    model_config = ConfigDict(frozen=True)

    day: int
    date: dt.date
    price_ht: Decimal
    price_ttc: Decimal
    discount_percentage: Optional[Decimal] = None


class PriceBreakdown(BaseModel):
    """Audit trail: which rule and which parameters produced the price."""

    model_config = ConfigDict(frozen=True)

    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    strategy: PricingStrategy
    tax_rate: Decimal
    apply_tax: bool = True
    unit_price_ht: Optional[Decimal] = None
    unit_price_ttc: Optional[Decimal] = None
    periods: Optional[int] = None
    period_days: Optional[int] = None
    multiplier: Optional[Decimal] = None
    tier_min_days: Optional[int] = None
    tier_max_days: Optional[int] = None
    rounding: Optional[str] = None
    days: list[DailyPriceBreakdown] = []


class PriceCalculation(BaseModel):
    """Result of pricing one dress. Recomputed, never patched."""

    model_config = ConfigDict(frozen=True)

    strategy_used: PricingStrategy
    base_price_ht: Decimal
    base_price_ttc: Decimal
    final_price_ht: Decimal
    final_price_ttc: Decimal
    duration_days: int
    discount_applied: Optional[Decimal] = None
    breakdown: PriceBreakdown


class DressPriceCalculation(BaseModel):
    """Per-dress working state held by the contract calculator."""

    model_config = ConfigDict(frozen=True)

    dress_id: str
    calculation: Optional[PriceCalculation] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return not self.loading and self.error is None and self.calculation is not None


class CalculationError(BaseModel):
    dress_id: str
    error: str


class AmountPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    ht: Decimal = ZERO
    ttc: Decimal = ZERO


class SuggestedDeposit(AmountPair):
    percentage: Decimal


class RecordedPayments(BaseModel):
    """Payments recorded externally against a contract."""

    account_paid_ht: Decimal = ZERO
    account_paid_ttc: Decimal = ZERO
    caution_paid_ht: Decimal = ZERO
    caution_paid_ttc: Decimal = ZERO


class ContractAmounts(BaseModel):
    """Contract-level totals, always as HT and TTC."""

    model_config = ConfigDict(frozen=True)

    # Price of dresses, package and addons
    total_price_ht: Decimal = ZERO
    total_price_ttc: Decimal = ZERO

    # Amount to pay (= total)
    account_ht: Decimal = ZERO
    account_ttc: Decimal = ZERO

    # Already paid against the account
    account_paid_ht: Decimal = ZERO
    account_paid_ttc: Decimal = ZERO

    # Security deposit
    caution_ht: Decimal = ZERO
    caution_ttc: Decimal = ZERO

    # Security deposit already paid
    caution_paid_ht: Decimal = ZERO
    caution_paid_ttc: Decimal = ZERO
