"""Tests for the rule catalog HTTP client."""

from datetime import date
from decimal import Decimal

import httpx
import pytest

from dress_pricing.catalog.client import RuleCatalogClient, normalize_calculation
from dress_pricing.errors import PricingError, RuleNotFound, UpstreamUnavailable
from dress_pricing.schemas.calculation import PriceCalculationRequest
from dress_pricing.schemas.rule import PricingStrategy

CALCULATION = {
    "strategy_used": "per_day",
    "base_price_ht": "200.00",
    "base_price_ttc": "240.00",
    "final_price_ht": "200.00",
    "final_price_ttc": "240.00",
    "duration_days": 2,
    "breakdown": {"rule_id": "r1", "strategy": "per_day", "tax_rate": "0.20"},
}

RULE = {
    "id": "r1",
    "name": "Day rate",
    "strategy": "per_day",
    "priority": 1,
    "is_active": True,
    "calculation_config": {"base_price_source": "dress"},
}


def make_client(handler) -> RuleCatalogClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://catalog")
    return RuleCatalogClient(http_client=http_client)


@pytest.fixture
def request_():
    return PriceCalculationRequest(dress_id="dress-1", start_date=date(2026, 6, 1), end_date=date(2026, 6, 3))


class TestCalculate:
    @pytest.mark.asyncio
    async def test_query_parameters(self, request_):
        """The request goes to the calculate route with all parameters."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=CALCULATION)

        async with make_client(handler) as client:
            result = await client.calculate(request_.model_copy(update={"pricing_rule_id": "r1"}))

        assert seen["path"] == "/pricing-rules/calculate"
        assert seen["params"] == {
            "dress_id": "dress-1",
            "start_date": "2026-06-01",
            "end_date": "2026-06-03",
            "pricing_rule_id": "r1",
        }
        assert result.final_price_ttc == Decimal("240.00")

    @pytest.mark.asyncio
    async def test_data_envelope(self, request_):
        """A data envelope is unwrapped."""
        async with make_client(lambda r: httpx.Response(200, json={"data": CALCULATION})) as client:
            result = await client.calculate(request_)
        assert result.breakdown.rule_id == "r1"

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_unavailable(self, request_):
        """A 5xx means the catalog is unavailable."""
        async with make_client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(UpstreamUnavailable):
                await client.calculate(request_)

    @pytest.mark.asyncio
    async def test_connection_error(self, request_):
        """A connection error means the catalog is unavailable."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(UpstreamUnavailable):
                await client.calculate(request_)

    @pytest.mark.asyncio
    async def test_unknown_forced_rule(self, request_):
        """A 404 on a forced rule is RuleNotFound."""
        async with make_client(lambda r: httpx.Response(404, json={"detail": "not found"})) as client:
            with pytest.raises(RuleNotFound) as exc_info:
                await client.calculate(request_.model_copy(update={"pricing_rule_id": "gone"}))
        assert exc_info.value.rule_id == "gone"

    @pytest.mark.asyncio
    async def test_catalog_message_surfaces(self, request_):
        """The catalog's own message is kept."""
        body = {"message": "No pricing rule for this dress"}
        async with make_client(lambda r: httpx.Response(422, json=body)) as client:
            with pytest.raises(PricingError, match="No pricing rule for this dress"):
                await client.calculate(request_)


class TestNormalizeCalculation:
    def test_legacy_list_breakdown(self):
        """A bare list breakdown becomes daily lines."""
        payload = dict(CALCULATION, breakdown=[
            {"day": 1, "date": "2026-06-01", "price_ht": "100.00", "price_ttc": "120.00"},
            {"day": 2, "date": "2026-06-02", "price_ht": "100.00", "price_ttc": "120.00"},
        ])
        result = normalize_calculation(payload)
        assert result.breakdown.strategy == PricingStrategy.PER_DAY
        assert len(result.breakdown.days) == 2
        assert result.breakdown.days[1].date == date(2026, 6, 2)

    def test_missing_breakdown(self):
        """A missing breakdown is empty."""
        payload = {k: v for k, v in CALCULATION.items() if k != "breakdown"}
        assert normalize_calculation(payload).breakdown.days == []

    def test_malformed(self):
        """Malformed payloads are upstream errors."""
        with pytest.raises(UpstreamUnavailable):
            normalize_calculation({"final_price_ttc": "abc"})
        with pytest.raises(UpstreamUnavailable):
            normalize_calculation(["not", "an", "object"])


class TestRules:
    @pytest.mark.asyncio
    async def test_list_rules(self):
        """Rules are listed for a service type."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["service_type_id"] == "st-1"
            return httpx.Response(200, json={"data": [RULE], "total": 1})

        async with make_client(handler) as client:
            rules = await client.list_rules(service_type_id="st-1")

        assert [r.id for r in rules] == ["r1"]

    @pytest.mark.asyncio
    async def test_get_rule(self):
        """One rule is fetched by id."""
        async with make_client(lambda r: httpx.Response(200, json={"data": RULE})) as client:
            rule = await client.get_rule("r1")
        assert rule.strategy == PricingStrategy.PER_DAY

    @pytest.mark.asyncio
    async def test_get_missing_rule(self):
        """A missing rule is RuleNotFound."""
        async with make_client(lambda r: httpx.Response(404)) as client:
            with pytest.raises(RuleNotFound):
                await client.get_rule("r9")
