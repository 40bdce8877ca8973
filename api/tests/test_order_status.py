import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from api.app.domain import ItemStatus, OrderStatus, TableStatus, can_transition
from api.app.domain import table_status
from api.app.domain.item_status import can_advance, rank
from api.app.domain.order_status import TERMINAL, is_terminal


@pytest.mark.parametrize(
    "src,dst",
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.PENDING, OrderStatus.PREPARING),
        (OrderStatus.CONFIRMED, OrderStatus.READY),
        (OrderStatus.READY, OrderStatus.SERVED),
        (OrderStatus.SERVED, OrderStatus.COMPLETED),
        (OrderStatus.SERVED, OrderStatus.CANCELLED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
    ],
)
def test_forward_and_cancel_moves_allowed(src, dst):
    assert can_transition(src, dst)


@pytest.mark.parametrize(
    "src,dst",
    [
        (OrderStatus.PREPARING, OrderStatus.CONFIRMED),
        (OrderStatus.SERVED, OrderStatus.PENDING),
        (OrderStatus.COMPLETED, OrderStatus.SERVED),
        (OrderStatus.CANCELLED, OrderStatus.PENDING),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    ],
)
def test_backward_and_terminal_moves_rejected(src, dst):
    assert not can_transition(src, dst)


def test_terminal_states():
    assert TERMINAL == {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    assert is_terminal("completed")
    assert not is_terminal("served")


def test_item_status_only_moves_forward():
    assert [rank(s) for s in ItemStatus] == [0, 1, 2, 3]
    assert can_advance("new", "ready")
    assert can_advance(ItemStatus.READY, ItemStatus.SERVED)
    assert not can_advance("ready", "in_progress")
    assert not can_advance("served", "served")


def test_table_moves():
    assert table_status.can_transition(TableStatus.FREE, TableStatus.OCCUPIED)
    assert table_status.can_transition(TableStatus.RESERVED, TableStatus.OCCUPIED)
    assert table_status.can_transition(TableStatus.BILL, TableStatus.CLEANING)
    assert not table_status.can_transition(TableStatus.CLEANING, TableStatus.OCCUPIED)
    assert not table_status.can_transition(TableStatus.FREE, TableStatus.CLEANING)
