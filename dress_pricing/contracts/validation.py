"""Contract consistency checks. Each returns a list of errors, empty when valid."""

from __future__ import annotations

from typing import Optional

from dress_pricing.schemas.calculation import ContractAmounts
from dress_pricing.schemas.catalog import ContractPackage


def validate_package_dresses(dress_count: int, package: Optional[ContractPackage]) -> list[str]:
    if package is None or dress_count <= package.num_dresses:
        return []
    return [
        f"Package {package.name} allows at most {package.num_dresses} dresses "
        f"({dress_count} selected)"
    ]


def validate_contract_amounts(amounts: ContractAmounts) -> list[str]:
    errors = []

    # Account must equal the total
    if amounts.account_ht != amounts.total_price_ht:
        errors.append("Amount due (HT) must equal total price (HT)")
    if amounts.account_ttc != amounts.total_price_ttc:
        errors.append("Amount due (TTC) must equal total price (TTC)")

    # Payments cannot exceed what is due
    if amounts.account_paid_ht > amounts.account_ht:
        errors.append("Paid amount (HT) exceeds amount due")
    if amounts.account_paid_ttc > amounts.account_ttc:
        errors.append("Paid amount (TTC) exceeds amount due")
    if amounts.caution_paid_ht > amounts.caution_ht:
        errors.append("Paid caution (HT) exceeds requested caution")
    if amounts.caution_paid_ttc > amounts.caution_ttc:
        errors.append("Paid caution (TTC) exceeds requested caution")

    return errors
