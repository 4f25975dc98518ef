"""Application configuration via environment variables."""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Tax
    tax_rate: Decimal = Decimal("0.20")  # French standard VAT

    # Contract amounts
    default_deposit_percentage: Decimal = Decimal("50")
    default_caution_amount: Decimal = Decimal("500")

    # Calculation cache
    calculation_cache_ttl_seconds: int = 120  # 2 minutes

    # Rule catalog service
    rule_catalog_url: str = "http://localhost:8000"
    rule_catalog_timeout_seconds: float = 10.0
    rule_catalog_sync_on_startup: bool = False

    # Redis (optional shared calculation cache)
    redis_url: str = ""

    # App
    log_level: str = "INFO"
    environment: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
