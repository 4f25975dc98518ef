"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dress_pricing import __version__
from dress_pricing.api.v1.pricing import router as pricing_router
from dress_pricing.catalog.calculators import RuleCatalog
from dress_pricing.catalog.client import RuleCatalogClient
from dress_pricing.config import settings
from dress_pricing.errors import (
    DressNotFound,
    InvalidDateRange,
    InvalidRuleConfig,
    NoApplicableRule,
    NoMatchingTier,
    PricingError,
    RuleNotFound,
    UpstreamUnavailable,
)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer() if settings.environment == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, settings.log_level.upper(), logging.INFO)
    ),
)

logger = structlog.get_logger()

ERROR_STATUS: dict[type[PricingError], int] = {
    InvalidDateRange: 422,
    NoApplicableRule: 422,
    NoMatchingTier: 422,
    InvalidRuleConfig: 422,
    RuleNotFound: 404,
    DressNotFound: 404,
    UpstreamUnavailable: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info(
        "app_starting",
        environment=settings.environment,
        rule_catalog=settings.rule_catalog_url,
    )
    if settings.rule_catalog_sync_on_startup:
        try:
            async with RuleCatalogClient() as client:
                app.state.rule_catalog.replace(await client.list_rules())
        except UpstreamUnavailable as exc:
            logger.warning("rule_catalog_sync_failed", error=exc.message)
    yield
    logger.info("app_shutting_down")


app = FastAPI(
    title="Dress Pricing API",
    description="Rule-based rental pricing and contract amounts",
    version=__version__,
    lifespan=lifespan,
)
app.state.rule_catalog = RuleCatalog()


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError) -> JSONResponse:
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        400,
    )
    logger.info("pricing_error", path=request.url.path, code=exc.code, status=status)
    return JSONResponse(status_code=status, content={"code": exc.code, "detail": exc.message})


app.include_router(pricing_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Dress Pricing API",
        "version": __version__,
        "status": "running",
    }
