"""Tests for the single-outlet cart session."""

import pytest
from pydantic import ValidationError

from app import commands
from app.cart import CartSession
from app.errors import EmptyCart, InactiveOutlet, NotFound
from app.models import OrderItem


def _item(menu_item_id, quantity=1, unit_price=30.0):
    return OrderItem(menu_item_id=menu_item_id, quantity=quantity, unit_price=unit_price)


def test_new_cart_is_unbound_and_empty():
    cart = CartSession()
    assert cart.get_outlet_id() is None
    assert len(cart) == 0
    assert cart.total == 0


def test_switching_outlet_clears_previous_items():
    cart = CartSession()
    cart.add_item("o1", _item("A"))
    cart.add_item("o2", _item("B"))

    assert cart.get_outlet_id() == "o2"
    assert [item.menu_item_id for item in cart.items] == ["B"]


def test_same_menu_item_increments_quantity():
    cart = CartSession()
    cart.add_item("o1", _item("A", quantity=1))
    cart.add_item("o1", _item("A", quantity=2))
    cart.add_item("o1", _item("B"))

    assert len(cart) == 2
    assert cart.items[0].quantity == 3
    assert cart.total == pytest.approx(4 * 30.0)


def test_remove_item_and_missing_item_is_noop():
    cart = CartSession()
    cart.add_item("o1", _item("A"))
    cart.remove_item("missing")
    cart.remove_item("A")

    assert len(cart) == 0


def test_set_quantity():
    cart = CartSession()
    cart.add_item("o1", _item("A"))
    cart.set_quantity("A", 5)
    assert cart.items[0].quantity == 5

    cart.set_quantity("A", 0)
    assert len(cart) == 0


def test_clear_releases_outlet_binding():
    cart = CartSession()
    cart.add_item("o1", _item("A"))
    cart.clear()

    assert cart.get_outlet_id() is None
    assert cart.items == ()


def test_checkout_returns_snapshot_and_clears():
    cart = CartSession()
    cart.add_item("o1", _item("A", quantity=2, unit_price=25))

    snapshot = cart.checkout()

    assert snapshot.outlet_id == "o1"
    assert snapshot.total == 50
    assert cart.get_outlet_id() is None
    assert len(cart) == 0
    with pytest.raises(ValidationError):
        snapshot.outlet_id = "o2"


def test_checkout_empty_cart():
    cart = CartSession()
    with pytest.raises(EmptyCart):
        cart.checkout()

    cart.add_item("o1", _item("A"))
    cart.remove_item("A")
    with pytest.raises(EmptyCart):
        cart.checkout()


async def test_add_to_cart_checks_outlet(seeded):
    cart = CartSession()

    await commands.add_to_cart(seeded, cart, "o1", _item("A"))
    assert cart.get_outlet_id() == "o1"

    with pytest.raises(NotFound):
        await commands.add_to_cart(seeded, cart, "nowhere", _item("B"))
    with pytest.raises(InactiveOutlet):
        await commands.add_to_cart(seeded, cart, "closed", _item("B"))
    assert [item.menu_item_id for item in cart.items] == ["A"]
