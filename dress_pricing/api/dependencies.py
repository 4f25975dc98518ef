"""FastAPI dependencies for the pricing API."""

from fastapi import Request

from dress_pricing.catalog.calculators import RuleCatalog


def get_rule_catalog(request: Request) -> RuleCatalog:
    """The app-wide rule snapshot (refreshed via /pricing-rules/refresh)."""
    return request.app.state.rule_catalog
