"""Contract Calculator: folds per-dress prices, package and addons into contract amounts.

Owns the ``dress_id -> DressPriceCalculation`` mapping of a contract draft.
Per-dress failures are captured in that mapping and never raised, so one
bad dress never poisons the others.
"""

from __future__ import annotations

import asyncio
import itertools
from decimal import Decimal
from typing import Iterable, Mapping, Optional

import structlog

from dress_pricing.catalog.calculators import PriceCalculator
from dress_pricing.config import settings
from dress_pricing.contracts.cache import CacheKey, CalculationCache, InMemoryCalculationCache, cache_key
from dress_pricing.contracts.validation import validate_contract_amounts, validate_package_dresses
from dress_pricing.errors import InvalidDateRange, PricingError
from dress_pricing.money import (
    calculate_caution,
    calculate_deposit,
    round_money,
    to_decimal,
    ttc_to_ht,
)
from dress_pricing.pricing.dates import DateLike, to_datetime, validate_date_range
from dress_pricing.schemas.calculation import (
    CalculationError,
    ContractAmounts,
    DressPriceCalculation,
    PriceCalculation,
    PriceCalculationRequest,
    RecordedPayments,
    SuggestedDeposit,
)
from dress_pricing.schemas.catalog import ContractAddon, ContractPackage, ServiceTypeConfig

logger = structlog.get_logger()


class ContractCalculator:
    """Price calculations and amounts for one contract draft."""

    def __init__(
        self,
        calculator: PriceCalculator,
        cache: Optional[CalculationCache] = None,
        service_type_config: Optional[ServiceTypeConfig] = None,
        deposit_percentage: Optional[Decimal] = None,
        tax_rate: Optional[Decimal] = None,
    ):
        self.calculator = calculator
        self.cache = cache if cache is not None else InMemoryCalculationCache()
        self.service_type_config = service_type_config
        self.deposit_percentage = to_decimal(
            deposit_percentage
            or (service_type_config.default_deposit_percentage if service_type_config else None)
            or settings.default_deposit_percentage
        )
        self.tax_rate = settings.tax_rate if tax_rate is None else tax_rate

        self.package: Optional[ContractPackage] = None
        self.addons: list[ContractAddon] = []

        self._calculations: dict[str, DressPriceCalculation] = {}
        self._tokens = itertools.count(1)
        self._latest: dict[str, int] = {}  # dress_id -> token of the newest request
        self._in_flight: dict[CacheKey, asyncio.Task] = {}

    # ─── Calculation ─────────────────────────────────────────────────

    async def calculate_dress_price(
        self,
        dress_id: str,
        start_date: DateLike,
        end_date: DateLike,
        pricing_rule_id: Optional[str] = None,
    ) -> Optional[PriceCalculation]:
        """(Re)compute the price of one dress.

        Rentals are priced in whole days: times of day are dropped before
        the range is checked, so a same-day booking is an invalid range.

        Every call gets a fresh token; a completion is stored only if its
        token is still the newest for the dress, so a slow older response
        can never overwrite a newer one.

        Returns:
            The calculation, or None when it failed (error stored on the entry)
        """
        token = next(self._tokens)
        self._latest[dress_id] = token

        try:
            start, end = validate_date_range(to_datetime(start_date).date(), to_datetime(end_date).date())
        except InvalidDateRange as exc:
            self._store(token, DressPriceCalculation(dress_id=dress_id, error=exc.message))
            return None

        self._store(token, DressPriceCalculation(dress_id=dress_id, loading=True))
        request = PriceCalculationRequest(
            dress_id=dress_id,
            start_date=start.date(),
            end_date=end.date(),
            pricing_rule_id=pricing_rule_id,
        )

        try:
            result = await self._fetch(request)
        except PricingError as exc:
            logger.warning(
                "price_calculation_failed",
                dress_id=dress_id,
                code=exc.code,
                error=exc.message,
            )
            self._store(token, DressPriceCalculation(dress_id=dress_id, error=exc.message))
            return None
        except Exception as exc:
            logger.exception("price_calculation_crashed", dress_id=dress_id)
            self._store(
                token,
                DressPriceCalculation(dress_id=dress_id, error=str(exc) or "Calculation error"),
            )
            return None

        self._store(token, DressPriceCalculation(dress_id=dress_id, calculation=result))
        return result

    async def calculate_multiple_dresses(
        self,
        dress_ids: Iterable[str],
        start_date: DateLike,
        end_date: DateLike,
        pricing_rule_id: Optional[str] = None,
    ) -> list[Optional[PriceCalculation]]:
        """Price all dresses concurrently; failures stay per dress."""
        return await asyncio.gather(
            *(
                self.calculate_dress_price(dress_id, start_date, end_date, pricing_rule_id)
                for dress_id in dress_ids
            )
        )

    def _store(self, token: int, entry: DressPriceCalculation) -> bool:
        if self._latest.get(entry.dress_id) != token:
            logger.debug("stale_price_calculation_discarded", dress_id=entry.dress_id, token=token)
            return False
        self._calculations[entry.dress_id] = entry
        return True

    async def _fetch(self, request: PriceCalculationRequest) -> PriceCalculation:
        key = cache_key(request)
        try:
            cached = await self.cache.get(key)
        except Exception as e:
            logger.warning("price_calculation_cache_read_error", dress_id=request.dress_id, error=str(e))
            cached = None
        if cached is not None:
            logger.debug("price_calculation_cache_hit", dress_id=request.dress_id)
            return cached

        # Identical request already running: share its result
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_upstream(key, request))
            self._in_flight[key] = task
        else:
            logger.debug("price_calculation_deduplicated", dress_id=request.dress_id)
        return await asyncio.shield(task)

    async def _fetch_upstream(self, key: CacheKey, request: PriceCalculationRequest) -> PriceCalculation:
        try:
            result = await self.calculator.calculate(request)
            try:
                await self.cache.set(key, result)
            except Exception as e:
                logger.warning("price_calculation_cache_write_error", dress_id=request.dress_id, error=str(e))
            return result
        finally:
            self._in_flight.pop(key, None)

    # ─── Draft management ────────────────────────────────────────────

    def remove_dress_calculation(self, dress_id: str) -> None:
        """Drop a dress from the draft; its in-flight result will be ignored."""
        self._calculations.pop(dress_id, None)
        self._latest.pop(dress_id, None)

    def reset_calculations(self) -> None:
        self._calculations.clear()
        self._latest.clear()

    def get_dress_calculation(self, dress_id: str) -> Optional[DressPriceCalculation]:
        return self._calculations.get(dress_id)

    @property
    def dress_calculations(self) -> Mapping[str, DressPriceCalculation]:
        return dict(self._calculations)

    def set_package(self, package: Optional[ContractPackage]) -> None:
        self.package = package

    def set_addons(self, addons: Iterable[ContractAddon]) -> None:
        self.addons = list(addons)

    # ─── Totals ──────────────────────────────────────────────────────

    @property
    def dresses_total_ttc(self) -> Decimal:
        total = sum(
            (entry.calculation.final_price_ttc for entry in self._calculations.values() if entry.is_ready),
            Decimal("0"),
        )
        return round_money(total)

    @property
    def extras_total_ttc(self) -> Decimal:
        """Selected package plus addons (all selected addons are billed)."""
        total = sum((addon.price_ttc for addon in self.addons), Decimal("0"))
        if self.package is not None:
            total += self.package.price_ttc
        return round_money(total)

    @property
    def total_price_ttc(self) -> Decimal:
        return round_money(self.dresses_total_ttc + self.extras_total_ttc)

    @property
    def total_price_ht(self) -> Decimal:
        # Derived from the TTC total, not summed per item
        return ttc_to_ht(self.total_price_ttc, self.tax_rate)

    @property
    def suggested_deposit(self) -> SuggestedDeposit:
        return SuggestedDeposit(
            ttc=calculate_deposit(self.total_price_ttc, self.deposit_percentage),
            ht=calculate_deposit(self.total_price_ht, self.deposit_percentage),
            percentage=self.deposit_percentage,
        )

    def contract_amounts(self, payments: Optional[RecordedPayments] = None) -> ContractAmounts:
        """Full contract amounts. Paid fields are zero unless payments are given."""
        payments = payments or RecordedPayments()
        total_ttc = self.total_price_ttc
        total_ht = self.total_price_ht
        caution_ttc = calculate_caution(total_ttc, self.service_type_config)

        return ContractAmounts(
            total_price_ht=total_ht,
            total_price_ttc=total_ttc,
            account_ht=total_ht,
            account_ttc=total_ttc,
            account_paid_ht=round_money(payments.account_paid_ht),
            account_paid_ttc=round_money(payments.account_paid_ttc),
            caution_ht=ttc_to_ht(caution_ttc, self.tax_rate),
            caution_ttc=caution_ttc,
            caution_paid_ht=round_money(payments.caution_paid_ht),
            caution_paid_ttc=round_money(payments.caution_paid_ttc),
        )

    # ─── State ───────────────────────────────────────────────────────

    @property
    def all_calculations_ready(self) -> bool:
        if not self._calculations:
            return False
        return all(entry.is_ready for entry in self._calculations.values())

    @property
    def has_calculation_errors(self) -> bool:
        return any(entry.error for entry in self._calculations.values())

    @property
    def calculation_errors(self) -> list[CalculationError]:
        return [
            CalculationError(dress_id=entry.dress_id, error=entry.error)
            for entry in self._calculations.values()
            if entry.error
        ]

    def validate(self, payments: Optional[RecordedPayments] = None) -> list[str]:
        """Package dress limit and amount consistency errors."""
        return validate_package_dresses(len(self._calculations), self.package) + validate_contract_amounts(
            self.contract_amounts(payments)
        )
