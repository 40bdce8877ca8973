import pathlib
import sys
from decimal import Decimal

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from api.app.domain import ValidationError
from api.app.tax.gst_engine import compute_totals, line_total, money


def test_two_tikka_one_biryani():
    totals = compute_totals(
        [{"qty": 2, "price": 349}, {"qty": 1, "price": 449}],
    )
    assert totals.subtotal == Decimal("1147.00")
    assert totals.tax == Decimal("57.35")
    assert totals.total == Decimal("1204.35")
    assert totals.discount == Decimal("0.00")


def test_each_half_is_levied_on_the_subtotal():
    totals = compute_totals([{"qty": 1, "price": "200"}], cgst_rate=6, sgst_rate=6)
    assert totals.cgst == Decimal("12.00")
    assert totals.sgst == Decimal("12.00")
    assert totals.tax == Decimal("24.00")
    assert totals.total == Decimal("224.00")


def test_discount_comes_off_before_tax_is_added():
    totals = compute_totals([{"qty": 2, "price": 349}, {"qty": 1, "price": 449}], 100)
    # tax stays on the undiscounted subtotal
    assert totals.tax == Decimal("57.35")
    assert totals.total == Decimal("1104.35")
    assert totals.total == totals.subtotal - totals.discount + totals.tax


@pytest.mark.parametrize("discount", [-1, "1147.01"])
def test_discount_outside_bounds_is_rejected(discount):
    with pytest.raises(ValidationError) as exc:
        compute_totals([{"qty": 2, "price": 349}, {"qty": 1, "price": 449}], discount)
    assert exc.value.code == "INVALID_DISCOUNT"


def test_full_discount_leaves_only_tax():
    totals = compute_totals([{"qty": 1, "price": 100}], 100)
    assert totals.total == Decimal("5.00")


def test_empty_order_is_zero():
    totals = compute_totals([])
    assert totals.as_dict() == {
        "subtotal": 0.0,
        "cgst": 0.0,
        "sgst": 0.0,
        "tax": 0.0,
        "discount": 0.0,
        "total": 0.0,
    }


def test_half_paise_rounds_up():
    assert money("0.125") == Decimal("0.13")
    assert line_total(3, "33.335") == Decimal("100.01")
    totals = compute_totals([{"qty": 1, "price": "0.10"}])
    assert totals.tax == Decimal("0.01")
    assert totals.total == Decimal("0.11")
