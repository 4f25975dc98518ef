"""Pricing API: price one dress, or compute the amounts of a contract draft."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dress_pricing.api.dependencies import get_rule_catalog
from dress_pricing.catalog.calculators import LocalPriceCalculator, RuleCatalog
from dress_pricing.catalog.client import RuleCatalogClient
from dress_pricing.contracts.aggregator import ContractCalculator
from dress_pricing.contracts.cache import NullCalculationCache, get_redis_cache
from dress_pricing.contracts.payments import PaymentSummary
from dress_pricing.errors import InvalidDateRange
from dress_pricing.pricing.dates import validate_contract_dates
from dress_pricing.pricing.engine import PricingEngine
from dress_pricing.schemas.calculation import (
    CalculationError,
    ContractAmounts,
    DressPriceCalculation,
    PriceCalculation,
    RecordedPayments,
    SuggestedDeposit,
)
from dress_pricing.schemas.catalog import ContractAddon, ContractPackage, Dress, ServiceTypeConfig

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["pricing"])


class PriceRequest(BaseModel):
    dress: Dress
    start_date: date
    end_date: date
    pricing_rule_id: Optional[str] = None
    customer_type: Optional[str] = None
    service_type: Optional[str] = None
    service_type_id: Optional[str] = None


class ContractAmountsRequest(BaseModel):
    dresses: list[Dress]
    start_date: date
    end_date: date
    pricing_rule_id: Optional[str] = None
    customer_type: Optional[str] = None
    service_type: Optional[str] = None
    service_type_id: Optional[str] = None
    service_type_config: Optional[ServiceTypeConfig] = None
    deposit_percentage: Optional[Decimal] = None
    package: Optional[ContractPackage] = None
    addons: list[ContractAddon] = []
    payments: Optional[RecordedPayments] = None


class ContractAmountsResponse(BaseModel):
    amounts: ContractAmounts
    payments: PaymentSummary
    suggested_deposit: SuggestedDeposit
    calculations: list[DressPriceCalculation]
    errors: list[CalculationError]
    all_calculations_ready: bool
    validation_errors: list[str]


@router.post("/pricing-rules/calculate", response_model=PriceCalculation)
async def calculate_price(
    body: PriceRequest,
    catalog: RuleCatalog = Depends(get_rule_catalog),
) -> PriceCalculation:
    """Price one dress for a period against the current rule snapshot.

    Pricing errors are turned into JSON responses by the app's
    PricingError handler.
    """
    engine = PricingEngine()
    return engine.calculate(
        catalog.all(),
        body.dress,
        body.start_date,
        body.end_date,
        pricing_rule_id=body.pricing_rule_id,
        customer_type=body.customer_type,
        service_type=body.service_type,
        service_type_id=body.service_type_id,
    )


def _cache_namespace(body: ContractAmountsRequest) -> str:
    # Same dress and dates can price differently per customer or service type
    return ":".join(
        value or "-" for value in (body.customer_type, body.service_type, body.service_type_id)
    )


@router.post("/contracts/amounts", response_model=ContractAmountsResponse)
async def contract_amounts(
    body: ContractAmountsRequest,
    catalog: RuleCatalog = Depends(get_rule_catalog),
) -> ContractAmountsResponse:
    """Compute totals, deposit, caution and remaining balances of a draft."""
    calculator = LocalPriceCalculator(
        catalog,
        {dress.id: dress for dress in body.dresses},
        customer_type=body.customer_type,
        service_type=body.service_type,
        service_type_id=body.service_type_id,
    )
    contract = ContractCalculator(
        calculator,
        cache=get_redis_cache(namespace=_cache_namespace(body)) or NullCalculationCache(),
        service_type_config=body.service_type_config,
        deposit_percentage=body.deposit_percentage,
    )
    contract.set_package(body.package)
    contract.set_addons(body.addons)

    await contract.calculate_multiple_dresses(
        [dress.id for dress in body.dresses],
        body.start_date,
        body.end_date,
        body.pricing_rule_id,
    )

    validation_errors = contract.validate(body.payments)
    try:
        validate_contract_dates(body.start_date, body.end_date, body.service_type_config)
    except InvalidDateRange as exc:
        validation_errors.append(exc.message)

    amounts = contract.contract_amounts(body.payments)
    logger.info(
        "contract_amounts_computed",
        dresses=len(body.dresses),
        errors=len(contract.calculation_errors),
        total_ttc=str(amounts.total_price_ttc),
    )
    return ContractAmountsResponse(
        amounts=amounts,
        payments=PaymentSummary.from_amounts(amounts),
        suggested_deposit=contract.suggested_deposit,
        calculations=list(contract.dress_calculations.values()),
        errors=contract.calculation_errors,
        all_calculations_ready=contract.all_calculations_ready,
        validation_errors=validation_errors,
    )


@router.post("/pricing-rules/refresh")
async def refresh_rules(catalog: RuleCatalog = Depends(get_rule_catalog)) -> dict:
    """Reload the rule snapshot from the rule catalog service."""
    async with RuleCatalogClient() as client:
        rules = await client.list_rules()
    catalog.replace(rules)
    return {"rules": len(catalog), "active": len(catalog.active())}
