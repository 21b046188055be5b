"""
Cart pricing: per-item discounts, then one global code discount, then tax.

Everything here is a pure function of its arguments.
"""
from decimal import Decimal
from typing import Any, Iterable, Optional

from snackshop import config
from snackshop.services.money import percent
from .models import LineItem, Totals

# Redeemable codes and the global rate each one sets
DISCOUNT_CODES: dict[str, Decimal] = {
    "SAVE10": Decimal("0.10"),
    "SAVE15": Decimal("0.15"),
}

ZERO = Decimal("0")


def normalize_code(code: Any) -> Optional[str]:
    """Trim and uppercase a user-entered code; None for empty or non-string input."""
    if not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    return normalized or None


def lookup_discount_rate(code: Any) -> Optional[Decimal]:
    """Rate for a code, or None when the code is unknown."""
    normalized = normalize_code(code)
    if normalized is None:
        return None
    return DISCOUNT_CODES.get(normalized)


def compute_totals(
    items: Iterable[LineItem],
    global_discount_rate: Decimal = ZERO,
    tax_rate: Decimal = config.TAX_RATE,
) -> Totals:
    """
    Compute cart totals.

    The global rate applies to the amount left after per-item discounts,
    never to the raw subtotal. Only the tax base is clamped at zero, so a
    combined discount above 100% yields a negative discounted subtotal.
    """
    subtotal = ZERO
    per_item_discount = ZERO
    item_count = 0

    for item in items:
        subtotal += item.unit_price * item.quantity
        per_item_discount += percent(item.unit_price, item.discount_percent) * item.quantity
        item_count += item.quantity

    after_item_discount = subtotal - per_item_discount
    global_discount = after_item_discount * global_discount_rate
    discount_amount = per_item_discount + global_discount
    discounted_subtotal = subtotal - discount_amount
    tax = max(ZERO, discounted_subtotal) * tax_rate
    total = discounted_subtotal + tax

    return Totals(
        subtotal=subtotal,
        per_item_discount=per_item_discount,
        global_discount=global_discount,
        discount_amount=discount_amount,
        discounted_subtotal=discounted_subtotal,
        tax=tax,
        total=total,
        item_count=item_count,
    )
