from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class QuoteTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(str(unit_price))).quantize(CENTS, rounding=ROUND_HALF_UP)


def _line_total_of(item: Mapping[str, Any] | object) -> Decimal:
    if isinstance(item, Mapping):
        value = item.get("line_total")
    else:
        value = getattr(item, "line_total", None)
    # A line without a total counts as zero rather than failing the quote
    if value is None:
        return ZERO
    return Decimal(str(value))


def compute_totals(
    line_items: Iterable[Mapping[str, Any] | object], tax_rate: Decimal
) -> QuoteTotals:
    """Derive subtotal, tax and total from the line totals of *line_items*.

    Accepts either mappings or objects exposing ``line_total``. Pure: the
    same items and rate always give the same result.
    """
    subtotal = sum((_line_total_of(item) for item in line_items), ZERO)
    subtotal = subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)
    tax_amount = (subtotal * Decimal(str(tax_rate))).quantize(CENTS, rounding=ROUND_HALF_UP)
    return QuoteTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=subtotal + tax_amount,
    )
