"""Money helpers: HT/TTC conversion, rounding, deposit and caution.

Every monetary output is a ``Decimal`` rounded to the cent (half away from
zero) at the point it is produced, so totals never carry fractional cents.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from dress_pricing.config import settings
from dress_pricing.schemas.catalog import ServiceTypeConfig

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
UNIT = Decimal("1")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")

# Whole-unit rounding modes used by rule configs
ROUNDING_MODES = {
    "up": ROUND_CEILING,
    "down": ROUND_FLOOR,
    "nearest": ROUND_HALF_UP,
}


def to_decimal(value: Number) -> Decimal:
    """Convert a number (or numeric string) to Decimal.

    Floats go through ``str`` so 0.1 stays 0.1.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary value: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a monetary value: {value!r}")
    return result


def round_money(value: Number) -> Decimal:
    """Round to 2 decimals, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_to_unit(value: Number, mode: str) -> Decimal:
    """Round to whole currency units using a rule's ``rounding`` policy."""
    try:
        rounding = ROUNDING_MODES[mode]
    except KeyError:
        raise ValueError(f"Unknown rounding mode: {mode}") from None
    return to_decimal(value).quantize(UNIT, rounding=rounding).quantize(CENT)


def _rate(tax_rate: Optional[Number]) -> Decimal:
    return settings.tax_rate if tax_rate is None else to_decimal(tax_rate)


def ht_to_ttc(amount: Number, tax_rate: Optional[Number] = None) -> Decimal:
    """Tax-exclusive → tax-inclusive."""
    return round_money(to_decimal(amount) * (1 + _rate(tax_rate)))


def ttc_to_ht(amount: Number, tax_rate: Optional[Number] = None) -> Decimal:
    """Tax-inclusive → tax-exclusive."""
    return round_money(to_decimal(amount) / (1 + _rate(tax_rate)))


def apply_discount(price: Number, discount_percentage: Number) -> Decimal:
    """Price after a percentage discount (0-100)."""
    return round_money(to_decimal(price) * (1 - to_decimal(discount_percentage) / HUNDRED))


def calculate_deposit(total_ttc: Number, percentage: Optional[Number] = None) -> Decimal:
    """Suggested advance payment (acompte) as a percentage of the total."""
    pct = settings.default_deposit_percentage if percentage is None else to_decimal(percentage)
    return round_money(to_decimal(total_ttc) * pct / HUNDRED)


def calculate_caution(
    total_ttc: Number,
    service_type_config: Optional[ServiceTypeConfig] = None,
) -> Decimal:
    """Security deposit for a contract.

    A service type with ``default_deposit_percentage`` takes that share of
    the total; anything else falls back to the fixed default caution.
    """
    if service_type_config is not None and service_type_config.default_deposit_percentage:
        return calculate_deposit(total_ttc, service_type_config.default_deposit_percentage)
    return round_money(settings.default_caution_amount)


def calculate_remaining_amount(total: Number, paid: Number) -> Decimal:
    """What is still owed. Never negative."""
    remaining = round_money(to_decimal(total) - to_decimal(paid))
    if remaining <= 0:
        return ZERO
    return remaining
