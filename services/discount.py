"""
Senior citizen / PWD discount allocation.

The discount is proportional to the party, not a flat percentage off the
bill: only the share of the subtotal attributable to the card holders is
discounted.

    per_person = subtotal / total_pax
    base       = per_person * eligible_count
    discount   = base * rate

Example: 4 diners, 1 senior card, 1000.00 bill -> (1000 / 4) * 1 * 0.20 = 50.00
"""

from decimal import Decimal
from typing import Optional

from models.money import ZERO, money
from models.order import DiscountSpec, DiscountType


def allocate(subtotal: Decimal, spec: Optional[DiscountSpec]) -> Decimal:
    """
    Compute the discount amount for a subtotal.

    DiscountSpec guarantees 1 <= total_pax and eligible_count <= total_pax,
    so the result always lies in [0, subtotal].

    Args:
        subtotal: Sum of line totals
        spec: Discount to apply (None or NONE type means no discount)

    Returns:
        Discount amount rounded to centavos
    """
    if spec is None or spec.discount_type is DiscountType.NONE:
        return ZERO
    if spec.eligible_count == 0 or subtotal <= 0:
        return ZERO

    per_person = subtotal / spec.total_pax
    discountable = per_person * spec.eligible_count
    return min(money(discountable * spec.rate), money(subtotal))
