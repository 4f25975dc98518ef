"""Catalog data consumed by the pricing engine (dresses, service types, extras)."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class Dress(BaseModel):
    """A rentable dress, as returned by the dress catalog."""

    id: str
    name: Optional[str] = None
    type_id: Optional[str] = None  # dress type reference, matched against applies_to.dress_types
    price_ht: Decimal = Decimal("0")  # purchase value
    price_ttc: Decimal = Decimal("0")
    price_per_day_ht: Optional[Decimal] = None
    price_per_day_ttc: Optional[Decimal] = None


class ServiceTypeConfig(BaseModel):
    """Per-service-type business settings (rental, package, sale...)."""

    min_duration_days: Optional[int] = None
    max_duration_days: Optional[int] = None
    requires_deposit: Optional[bool] = None
    default_deposit_percentage: Optional[Decimal] = None
    duration_minutes: Optional[int] = None
    return_policy_days: Optional[int] = None
    weekend_only: Optional[bool] = None


class ContractAddon(BaseModel):
    """Optional service billed on top of the dresses (alterations, cleaning...)."""

    id: str
    name: str
    description: Optional[str] = None
    price_ht: Decimal = Decimal("0")
    price_ttc: Decimal = Decimal("0")
    included: bool = False  # pre-selected by default in new contracts


class ContractPackage(BaseModel):
    """Fixed-price bundle covering up to ``num_dresses`` dresses."""

    id: str
    name: str
    num_dresses: int = 1
    price_ht: Decimal = Decimal("0")
    price_ttc: Decimal = Decimal("0")
    addon_ids: list[str] = []
