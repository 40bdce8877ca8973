"""GST calculation helpers for orders.

This module centralises order money handling with precise ₹0.01 rounding.
CGST and SGST are each levied on the subtotal (never on each other) and the
grand total always satisfies ``total == subtotal - discount + tax``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from ..domain import ValidationError

ROUND = Decimal("0.01")
DEFAULT_CGST = Decimal("2.5")
DEFAULT_SGST = Decimal("2.5")


def money(value: object) -> Decimal:
    """Coerce ``value`` to a ``Decimal`` rounded half-up to paise."""

    return Decimal(str(value)).quantize(ROUND, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    """Financial snapshot stored on an order."""

    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {key: float(value) for key, value in asdict(self).items()}


def line_total(qty: int, unit_price: object) -> Decimal:
    """Return ``qty * unit_price`` rounded to paise."""

    return money(Decimal(qty) * Decimal(str(unit_price)))


def compute_totals(
    lines: Iterable[Mapping[str, object]],
    discount: object = 0,
    *,
    cgst_rate: object = DEFAULT_CGST,
    sgst_rate: object = DEFAULT_SGST,
) -> OrderTotals:
    """Build the totals for ``lines``.

    Parameters
    ----------
    lines:
        Iterable of mappings with ``qty`` and ``price`` (the unit price
        snapshot).
    discount:
        Flat amount taken off the subtotal. Must lie between zero and the
        subtotal.
    cgst_rate, sgst_rate:
        Percentages applied independently to the subtotal.
    """

    subtotal = Decimal("0")
    for line in lines:
        subtotal += line_total(int(line["qty"]), line["price"])
    subtotal = money(subtotal)

    disc = money(discount or 0)
    if disc < 0:
        raise ValidationError("discount cannot be negative", "INVALID_DISCOUNT")
    if disc > subtotal:
        raise ValidationError("discount exceeds subtotal", "INVALID_DISCOUNT")

    cgst_raw = subtotal * Decimal(str(cgst_rate)) / Decimal("100")
    sgst_raw = subtotal * Decimal(str(sgst_rate)) / Decimal("100")
    tax = money(cgst_raw + sgst_raw)
    total = subtotal - disc + tax

    return OrderTotals(
        subtotal=subtotal,
        cgst=money(cgst_raw),
        sgst=money(sgst_raw),
        tax=tax,
        discount=disc,
        total=total,
    )
