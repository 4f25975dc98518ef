"""Pydantic schemas shared by the engine, the contract calculator and the API."""

from dress_pricing.schemas.calculation import (
    AmountPair,
    BookingContext,
    CalculationError,
    ContractAmounts,
    DailyPriceBreakdown,
    DressPriceCalculation,
    PriceBreakdown,
    PriceCalculation,
    PriceCalculationRequest,
    RecordedPayments,
    SuggestedDeposit,
)
from dress_pricing.schemas.catalog import ContractAddon, ContractPackage, Dress, ServiceTypeConfig
from dress_pricing.schemas.rule import (
    AppliesTo,
    FixedPriceConfig,
    FlatRateConfig,
    PerDayConfig,
    PricingRule,
    PricingStrategy,
    Tier,
    TieredConfig,
    parse_rule,
    parse_rules,
)

__all__ = [
    "AmountPair",
    "AppliesTo",
    "BookingContext",
    "CalculationError",
    "ContractAddon",
    "ContractAmounts",
    "ContractPackage",
    "DailyPriceBreakdown",
    "Dress",
    "DressPriceCalculation",
    "FixedPriceConfig",
    "FlatRateConfig",
    "PerDayConfig",
    "PriceBreakdown",
    "PriceCalculation",
    "PriceCalculationRequest",
    "PricingRule",
    "PricingStrategy",
    "RecordedPayments",
    "ServiceTypeConfig",
    "SuggestedDeposit",
    "Tier",
    "TieredConfig",
    "parse_rule",
    "parse_rules",
]
