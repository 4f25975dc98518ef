"""Price calculators: where a contract gets its per-dress prices from.

The contract calculator only depends on the ``PriceCalculator`` protocol:
``LocalPriceCalculator`` evaluates rules in-process, ``RuleCatalogClient``
(see ``client.py``) asks the remote rule catalog.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

import structlog

from dress_pricing.errors import DressNotFound
from dress_pricing.pricing.engine import PricingEngine
from dress_pricing.schemas.calculation import PriceCalculation, PriceCalculationRequest
from dress_pricing.schemas.catalog import Dress
from dress_pricing.schemas.rule import PricingRule

logger = structlog.get_logger()


class PriceCalculator(Protocol):
    async def calculate(self, request: PriceCalculationRequest) -> PriceCalculation: ...


class RuleCatalog:
    """Point-in-time snapshot of the pricing rules.

    The owner refreshes it with ``replace``; nothing here polls.
    """

    def __init__(self, rules: Iterable[PricingRule] = ()):
        self._rules: dict[str, PricingRule] = {}
        self.replace(rules)

    def replace(self, rules: Iterable[PricingRule]) -> None:
        self._rules = {rule.id: rule for rule in rules}
        logger.debug("rule_catalog_refreshed", rules=len(self._rules))

    def get(self, rule_id: str) -> Optional[PricingRule]:
        return self._rules.get(rule_id)

    def all(self) -> list[PricingRule]:
        return list(self._rules.values())

    def active(self) -> list[PricingRule]:
        return [rule for rule in self._rules.values() if rule.is_active]

    def __len__(self) -> int:
        return len(self._rules)


class LocalPriceCalculator:
    """Evaluates requests against a local rule snapshot and dress lookup."""

    def __init__(
        self,
        catalog: RuleCatalog,
        dresses: Mapping[str, Dress],
        engine: Optional[PricingEngine] = None,
        customer_type: Optional[str] = None,
        service_type: Optional[str] = None,
        service_type_id: Optional[str] = None,
    ):
        self.catalog = catalog
        self.dresses = dresses
        self.engine = engine or PricingEngine()
        self.customer_type = customer_type
        self.service_type = service_type
        self.service_type_id = service_type_id

    async def calculate(self, request: PriceCalculationRequest) -> PriceCalculation:
        dress = self.dresses.get(request.dress_id)
        if dress is None:
            raise DressNotFound(request.dress_id)

        return self.engine.calculate(
            self.catalog.all(),
            dress,
            request.start_date,
            request.end_date,
            pricing_rule_id=request.pricing_rule_id,
            customer_type=self.customer_type,
            service_type=self.service_type,
            service_type_id=self.service_type_id,
        )
