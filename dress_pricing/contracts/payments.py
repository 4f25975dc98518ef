"""Payment reconciliation: remaining balances and paid percentages."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict

from dress_pricing.money import HUNDRED, calculate_remaining_amount
from dress_pricing.schemas.calculation import AmountPair, ContractAmounts


def paid_percentage(paid: Decimal, due: Decimal) -> int:
    """Whole percentage of ``due`` already paid; 0 when nothing is due."""
    if due == 0:
        return 0
    return int((paid / due * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    remaining_account: AmountPair
    remaining_caution: AmountPair
    total_remaining: AmountPair
    is_fully_paid: bool
    account_paid_percentage: int
    caution_paid_percentage: int

    @classmethod
    def from_amounts(cls, amounts: ContractAmounts) -> "PaymentSummary":
        remaining_account = AmountPair(
            ht=calculate_remaining_amount(amounts.account_ht, amounts.account_paid_ht),
            ttc=calculate_remaining_amount(amounts.account_ttc, amounts.account_paid_ttc),
        )
        remaining_caution = AmountPair(
            ht=calculate_remaining_amount(amounts.caution_ht, amounts.caution_paid_ht),
            ttc=calculate_remaining_amount(amounts.caution_ttc, amounts.caution_paid_ttc),
        )
        return cls(
            remaining_account=remaining_account,
            remaining_caution=remaining_caution,
            total_remaining=AmountPair(
                ht=remaining_account.ht + remaining_caution.ht,
                ttc=remaining_account.ttc + remaining_caution.ttc,
            ),
            is_fully_paid=remaining_account.ttc == 0 and remaining_caution.ttc == 0,
            account_paid_percentage=paid_percentage(amounts.account_paid_ttc, amounts.account_ttc),
            caution_paid_percentage=paid_percentage(amounts.caution_paid_ttc, amounts.caution_ttc),
        )
