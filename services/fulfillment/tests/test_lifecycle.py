"""Tests for the order status state machine."""

from datetime import datetime, timezone

import pytest

from app.errors import IllegalTransition
from app.lifecycle import PIPELINE, OrderLifecycle, is_terminal, next_status
from app.models import Order, OrderItem, OrderStatus

NON_TERMINAL = [
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
]


def _order(status):
    now = datetime.now(timezone.utc)
    return Order(
        id="ord-1",
        outlet_id="o1",
        items=[OrderItem(menu_item_id="thali", quantity=1, unit_price=80)],
        status=status,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.parametrize("status", NON_TERMINAL)
def test_single_step_forward_is_legal(status):
    order = _order(status)
    target = next_status(status)

    moved = OrderLifecycle().transition(order, target)

    assert moved.status == target
    assert order.status == status  # 元の注文は変わらない


@pytest.mark.parametrize("status", NON_TERMINAL)
def test_cancel_from_any_non_terminal_state(status):
    moved = OrderLifecycle().transition(_order(status), OrderStatus.CANCELLED)
    assert moved.status == OrderStatus.CANCELLED


@pytest.mark.parametrize("status", NON_TERMINAL)
def test_only_next_state_or_cancel_allowed(status):
    lifecycle = OrderLifecycle()
    allowed = {next_status(status), OrderStatus.CANCELLED}

    for target in OrderStatus:
        if target in allowed:
            continue
        with pytest.raises(IllegalTransition):
            lifecycle.transition(_order(status), target)


@pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_terminal_states_reject_everything(status):
    lifecycle = OrderLifecycle(allow_skip_ahead=True)
    assert lifecycle.allowed_targets(status) == frozenset()
    for target in OrderStatus:
        with pytest.raises(IllegalTransition):
            lifecycle.transition(_order(status), target)


def test_skip_ahead_rejected_by_default():
    with pytest.raises(IllegalTransition) as exc_info:
        OrderLifecycle().transition(_order(OrderStatus.PENDING), OrderStatus.PREPARING)
    assert exc_info.value.current == "pending"
    assert exc_info.value.target == "preparing"


def test_skip_ahead_toggle_allows_later_pipeline_states():
    lifecycle = OrderLifecycle(allow_skip_ahead=True)

    assert lifecycle.can_transition(OrderStatus.PENDING, OrderStatus.READY)
    assert lifecycle.can_transition(OrderStatus.ACCEPTED, OrderStatus.COMPLETED)
    assert not lifecycle.can_transition(OrderStatus.READY, OrderStatus.ACCEPTED)
    assert not lifecycle.can_transition(OrderStatus.PREPARING, OrderStatus.PREPARING)


def test_pipeline_helpers():
    assert PIPELINE[0] == OrderStatus.PENDING
    assert next_status(OrderStatus.READY) == OrderStatus.COMPLETED
    assert next_status(OrderStatus.COMPLETED) is None
    assert next_status(OrderStatus.CANCELLED) is None
    assert is_terminal(OrderStatus.CANCELLED)
    assert not is_terminal(OrderStatus.READY)


def test_transition_accepts_plain_status_string():
    moved = OrderLifecycle().transition(_order(OrderStatus.PENDING), "accepted")
    assert moved.status == OrderStatus.ACCEPTED


def test_unknown_status_string_is_illegal_transition():
    with pytest.raises(IllegalTransition) as exc_info:
        OrderLifecycle().transition(_order(OrderStatus.PENDING), "shipped")
    assert exc_info.value.target == "shipped"
