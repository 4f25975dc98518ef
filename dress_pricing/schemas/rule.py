"""Pricing rule schemas.

``calculation_config`` is a closed union with one variant per strategy; the
variant is picked from the rule's ``strategy`` so a rule can never carry the
config shape of another strategy.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from dress_pricing.errors import InvalidRuleConfig


class PricingStrategy(str, Enum):
    PER_DAY = "per_day"  # price per day
    TIERED = "tiered"  # degressive price by duration tiers
    FLAT_RATE = "flat_rate"  # flat rate per period
    FIXED_PRICE = "fixed_price"  # absolute price, duration ignored


class RoundingPolicy(str, Enum):
    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"


class BasePriceSource(str, Enum):
    HT = "ht"
    TTC = "ttc"


class Period(str, Enum):
    DAY = "day"
    WEEKEND = "weekend"
    WEEK = "week"
    MONTH = "month"


PERIOD_DAYS: dict[Period, int] = {
    Period.DAY: 1,
    Period.WEEKEND: 2,
    Period.WEEK: 7,
    Period.MONTH: 30,
}


class TaxConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    apply_tax: bool = True
    tax_rate: Optional[Decimal] = Field(default=None, ge=0)  # None = business default

    @field_validator("tax_rate")
    @classmethod
    def _percent_to_fraction(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        # Catalogs store either 0.2 or 20
        if v is not None and v > 1:
            return v / 100
        return v


class DressPriceConfig(TaxConfig):
    base_price_source: BasePriceSource = BasePriceSource.HT
    rounding: Optional[RoundingPolicy] = None

    @field_validator("base_price_source", mode="before")
    @classmethod
    def _dress_means_ht(cls, v: Any) -> Any:
        if v is None or v in ("dress", "dress_ht"):
            return BasePriceSource.HT
        if v == "dress_ttc":
            return BasePriceSource.TTC
        return v


class PerDayConfig(DressPriceConfig):
    strategy: Literal["per_day"] = "per_day"


class Tier(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_days: int = Field(ge=1)
    max_days: Optional[int] = None  # None = open-ended
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    @model_validator(mode="after")
    def _ordered_bounds(self) -> "Tier":
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days must be >= min_days")
        return self

    def contains(self, duration_days: int) -> bool:
        if duration_days < self.min_days:
            return False
        return self.max_days is None or duration_days <= self.max_days


class TieredConfig(DressPriceConfig):
    strategy: Literal["tiered"] = "tiered"
    tiers: Optional[list[Tier]] = None


class FlatRateConfig(DressPriceConfig):
    strategy: Literal["flat_rate"] = "flat_rate"
    applies_to_period: Optional[Period] = None
    fixed_multiplier: Optional[Decimal] = Field(default=None, ge=0)
    period_days: Optional[int] = Field(default=None, gt=0)  # overrides PERIOD_DAYS


class FixedPriceConfig(TaxConfig):
    strategy: Literal["fixed_price"] = "fixed_price"
    fixed_amount_ht: Optional[Decimal] = Field(default=None, ge=0)
    fixed_amount_ttc: Optional[Decimal] = Field(default=None, ge=0)


CalculationConfig = Annotated[
    Union[PerDayConfig, TieredConfig, FlatRateConfig, FixedPriceConfig],
    Field(discriminator="strategy"),
]


class AppliesTo(BaseModel):
    """Matching predicate. Absent or empty fields match everything."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    dress_types: Optional[list[str]] = None
    min_duration_days: Optional[int] = None
    max_duration_days: Optional[int] = None
    max_duration_hours: Optional[int] = None
    customer_types: Optional[list[str]] = None
    seasons: Optional[list[str]] = None
    weekdays: Optional[list[str]] = None
    service_types: Optional[list[str]] = None


class PricingRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    service_type_id: Optional[str] = None
    strategy: PricingStrategy
    priority: int = 0
    is_active: bool = True
    calculation_config: CalculationConfig
    applies_to: AppliesTo = AppliesTo()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _tag_config(cls, data: Any) -> Any:
        """Route the raw config to the variant of the rule's strategy."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        strategy = getattr(data.get("strategy"), "value", data.get("strategy"))
        config = data.get("calculation_config")
        if isinstance(config, BaseModel):
            config = config.model_dump(exclude={"strategy"})
        data["calculation_config"] = {**(config or {}), "strategy": strategy}
        if data.get("applies_to") is None:
            data["applies_to"] = {}
        if data.get("priority") is None:
            data["priority"] = 0
        if data.get("is_active") is None:
            data["is_active"] = True
        return data


def parse_rule(payload: Any) -> PricingRule:
    """Validate one raw catalog rule, unwrapping a ``{"data": {...}}`` envelope."""
    if not isinstance(payload, dict):
        raise InvalidRuleConfig("rule", detail=f"must be an object, got {type(payload).__name__}")
    if isinstance(payload.get("data"), dict):
        payload = payload["data"]
    try:
        return PricingRule.model_validate(payload)
    except ValidationError as exc:
        error = exc.errors()[0]
        # Integer parts are list indexes, e.g. (calculation_config, tiered, tiers, 0, min_days)
        loc = [part for part in error["loc"] if isinstance(part, str)]
        field = loc[-1] if loc else "calculation_config"
        if "strategy" in loc:
            field = "strategy"
        raise InvalidRuleConfig(
            field,
            strategy=str(payload.get("strategy")),
            detail=f"is invalid ({error['msg']})",
        ) from exc


def parse_rules(payload: Any) -> list[PricingRule]:
    """Validate a rule list: bare list or ``{"data": [...], "total": n}``."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]
    if not isinstance(payload, list):
        return []
    return [parse_rule(item) for item in payload]
