"""Pricing and totals calculator.

Policy:
1. Senior citizen / PWD discount is a fixed 20%.
2. Custom discounts are clamped to 0-100%; out-of-range entry is tolerated.
3. VAT (12%) is charged on the discounted subtotal, never before discount.

All arithmetic is exact Decimal; rounding to centavos happens only for display.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .errors import InvalidLineItem, errmsg
from .models import DiscountKind, DiscountSelection, LineItem, Totals, to_decimal
from .validation import require_non_negative, require_whole_number

VAT_RATE = Decimal("0.12")
SENIOR_PWD_RATE = Decimal("0.20")

_HUNDRED = Decimal(100)
_CENTAVO = Decimal("0.01")


def discount_rate(selection: DiscountSelection, custom_percent=None) -> Decimal:
    """Return the fractional discount rate for a selection.

    Args:
        selection: The active discount selection.
        custom_percent: Overrides the percent stored on a Custom selection.

    Returns:
        A Decimal in [0, 1].
    """
    if selection.kind == DiscountKind.SENIOR_PWD:
        return SENIOR_PWD_RATE
    if selection.kind == DiscountKind.CUSTOM:
        percent = custom_percent if custom_percent is not None else selection.percent
        if percent is None:
            return Decimal(0)
        clamped = min(max(to_decimal(percent), Decimal(0)), _HUNDRED)
        return clamped / _HUNDRED
    return Decimal(0)


def validate_line(line: LineItem) -> None:
    require_whole_number(line.quantity, 1, InvalidLineItem(errmsg.INVALID_QUANTITY, line.id))
    require_non_negative(line.unit_price, InvalidLineItem(errmsg.NEGATIVE_PRICE, line.id))


def compute_totals(
    line_items: Iterable[LineItem],
    discount: Optional[DiscountSelection] = None,
    custom_percent=None,
) -> Totals:
    """Compute subtotal, discount, VAT and total for a set of lines.

    Raises:
        InvalidLineItem: A line has quantity below 1 or a negative price.
    """
    selection = discount or DiscountSelection.none()

    subtotal = Decimal(0)
    for line in line_items:
        validate_line(line)
        subtotal += line.line_total

    discount_amount = subtotal * discount_rate(selection, custom_percent)
    discounted_subtotal = subtotal - discount_amount
    vat = discounted_subtotal * VAT_RATE

    return Totals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        discounted_subtotal=discounted_subtotal,
        vat=vat,
        total=discounted_subtotal + vat,
    )


def to_currency(amount: Decimal) -> Decimal:
    """Round to centavos for display."""
    return to_decimal(amount).quantize(_CENTAVO, rounding=ROUND_HALF_UP)


def star_points_earned(total: Decimal, pesos_per_point: int = 200) -> int:
    """One loyalty star point per full ``pesos_per_point`` of the total."""
    if pesos_per_point <= 0 or total <= 0:
        return 0
    return int(to_decimal(total) // pesos_per_point)
