"""Rule catalog HTTP client: rules snapshot and remote price calculation."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from dress_pricing.config import settings
from dress_pricing.errors import PricingError, RuleNotFound, UpstreamUnavailable
from dress_pricing.schemas.calculation import PriceCalculation, PriceCalculationRequest
from dress_pricing.schemas.rule import PricingRule, parse_rule, parse_rules

logger = structlog.get_logger()


def _unwrap(payload: Any) -> Any:
    """Strip the ``{"data": ...}`` envelope the catalog sometimes adds."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), (dict, list)):
        return payload["data"]
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"HTTP {response.status_code}"


def normalize_calculation(payload: Any) -> PriceCalculation:
    """Build a PriceCalculation from the catalog response.

    Older catalog versions send ``breakdown`` as the bare list of daily lines.
    """
    payload = _unwrap(payload)
    if not isinstance(payload, dict):
        raise UpstreamUnavailable("Malformed price calculation response")

    data = dict(payload)
    breakdown = data.get("breakdown")
    if breakdown is None or isinstance(breakdown, list):
        data["breakdown"] = {
            "strategy": data.get("strategy_used"),
            "tax_rate": settings.tax_rate,
            "days": breakdown or [],
        }
    try:
        return PriceCalculation.model_validate(data)
    except ValidationError as exc:
        raise UpstreamUnavailable(f"Malformed price calculation response: {exc.errors()[0]['msg']}") from exc


class RuleCatalogClient:
    """Async client for the rule catalog service.

    Implements the ``PriceCalculator`` protocol so it can feed a
    ContractCalculator directly.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or settings.rule_catalog_url,
            timeout=timeout or settings.rule_catalog_timeout_seconds,
        )

    async def __aenter__(self) -> "RuleCatalogClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict[str, str]] = None) -> httpx.Response:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.warning("rule_catalog_unreachable", path=path, error=str(exc))
            raise UpstreamUnavailable(f"Rule catalog unreachable: {exc}") from exc

        if response.status_code >= 500:
            logger.warning("rule_catalog_error", path=path, status=response.status_code)
            raise UpstreamUnavailable(f"Rule catalog error: HTTP {response.status_code}")
        return response

    async def list_rules(self, service_type_id: Optional[str] = None) -> list[PricingRule]:
        """Fetch the full rule list (optionally for one service type)."""
        params = {"service_type_id": service_type_id} if service_type_id else None
        response = await self._get("/pricing-rules", params=params)
        if response.is_error:
            raise PricingError(_error_message(response))

        rules = parse_rules(response.json())
        logger.info("pricing_rules_fetched", count=len(rules), service_type_id=service_type_id)
        return rules

    async def get_rule(self, rule_id: str) -> PricingRule:
        response = await self._get(f"/pricing-rules/{rule_id}")
        if response.status_code == 404:
            raise RuleNotFound(rule_id)
        if response.is_error:
            raise PricingError(_error_message(response))
        return parse_rule(response.json())

    async def calculate(self, request: PriceCalculationRequest) -> PriceCalculation:
        """GET /pricing-rules/calculate for one dress and period."""
        response = await self._get("/pricing-rules/calculate", params=request.query_params())
        if response.status_code == 404 and request.pricing_rule_id:
            raise RuleNotFound(request.pricing_rule_id)
        if response.is_error:
            raise PricingError(_error_message(response))

        calculation = normalize_calculation(response.json())
        logger.debug(
            "remote_price_calculated",
            dress_id=request.dress_id,
            final_price_ttc=str(calculation.final_price_ttc),
        )
        return calculation
