"""Tests for the ShoppingCart aggregate: quantity and stock invariants, snapshots."""

import dataclasses
import json

import pytest
from storefront.cart.cart import CartSnapshot, ShoppingCart
from storefront.cart.events import CartCleared, CartItemAdded, CartItemRemoved
from storefront.errors import CartItemNotFound, InsufficientStock, InvalidQuantity, OutOfStock


def _make_cart():
    cart = ShoppingCart.create(customer_id="cust-001")
    cart._events.clear()
    return cart


class TestAddItem:
    def test_new_line_snapshots_price(self):
        cart = _make_cart()
        item = cart.add_item("kibble-10kg", quantity=2, unit_price=10000, available_stock=10)

        assert len(cart.items) == 1
        assert item.quantity == 2
        assert item.unit_price == 10000

    def test_same_product_is_summed_not_duplicated(self):
        cart = _make_cart()
        cart.add_item("kibble-10kg", quantity=2, unit_price=10000, available_stock=10)
        cart.add_item("kibble-10kg", quantity=3, unit_price=12000, available_stock=10)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5
        # Price stays at the first snapshot
        assert cart.items[0].unit_price == 10000

    def test_raises_item_added_event(self):
        cart = _make_cart()
        cart.add_item("kibble-10kg", quantity=2, unit_price=10000, available_stock=10)

        event = cart._events[-1]
        assert isinstance(event, CartItemAdded)
        assert event.quantity == 2
        assert event.line_quantity == 2

    def test_existing_plus_requested_over_stock_fails(self):
        cart = _make_cart()
        cart.add_item("chew-toy", quantity=3, unit_price=5000, available_stock=5)

        with pytest.raises(InsufficientStock) as exc_info:
            cart.add_item("chew-toy", quantity=3, unit_price=5000, available_stock=5)

        assert exc_info.value.details == {"product_id": "chew-toy", "requested": 6, "available": 5}
        assert cart.items[0].quantity == 3

    def test_zero_stock_is_out_of_stock(self):
        cart = _make_cart()

        with pytest.raises(OutOfStock):
            cart.add_item("bird-seed", quantity=1, unit_price=2500, available_stock=0)

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_below_one_is_rejected(self, quantity):
        cart = _make_cart()

        with pytest.raises(InvalidQuantity) as exc_info:
            cart.add_item("kibble-10kg", quantity=quantity, unit_price=10000, available_stock=10)

        assert "quantity" in exc_info.value.messages
        assert cart.items == []


class TestUpdateQuantity:
    def test_sets_new_quantity(self):
        cart = _make_cart()
        item = cart.add_item("kibble-10kg", quantity=1, unit_price=10000, available_stock=10)

        cart.update_quantity(item.id, 4, available_stock=10)

        assert cart.items[0].quantity == 4

    def test_over_stock_fails(self):
        cart = _make_cart()
        item = cart.add_item("kibble-10kg", quantity=1, unit_price=10000, available_stock=10)

        with pytest.raises(InsufficientStock):
            cart.update_quantity(item.id, 11, available_stock=10)

    def test_zero_is_rejected_not_treated_as_removal(self):
        cart = _make_cart()
        item = cart.add_item("kibble-10kg", quantity=1, unit_price=10000, available_stock=10)

        with pytest.raises(InvalidQuantity):
            cart.update_quantity(item.id, 0, available_stock=10)

        assert len(cart.items) == 1

    def test_unknown_item(self):
        cart = _make_cart()

        with pytest.raises(CartItemNotFound):
            cart.update_quantity("missing", 1, available_stock=10)


class TestRemoveAndClear:
    def test_remove_is_idempotent(self):
        cart = _make_cart()
        item = cart.add_item("kibble-10kg", quantity=1, unit_price=10000, available_stock=10)

        assert cart.remove_item(item.id) is True
        assert cart.remove_item(item.id) is False
        assert cart.items == []
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_clear_drops_every_line(self):
        cart = _make_cart()
        cart.add_item("kibble-10kg", quantity=1, unit_price=10000, available_stock=10)
        cart.add_item("chew-toy", quantity=2, unit_price=5000, available_stock=5)

        assert cart.clear() == 2
        assert cart.items == []
        assert isinstance(cart._events[-1], CartCleared)

    def test_clearing_an_empty_cart_is_a_no_op(self):
        cart = _make_cart()

        assert cart.clear() == 0
        assert cart._events == []


class TestSnapshot:
    def test_snapshot_copies_lines(self):
        cart = _make_cart()
        cart.add_item("kibble-10kg", quantity=2, unit_price=10000, available_stock=10)

        snapshot = cart.snapshot()

        assert snapshot.customer_id == "cust-001"
        assert [(line.product_id, line.quantity, line.unit_price) for line in snapshot.lines] == [
            ("kibble-10kg", 2, 10000)
        ]

    def test_snapshot_is_unaffected_by_later_mutation(self):
        cart = _make_cart()
        cart.add_item("kibble-10kg", quantity=2, unit_price=10000, available_stock=10)
        snapshot = cart.snapshot()

        cart.clear()

        assert len(snapshot.lines) == 1

    def test_snapshot_is_frozen(self):
        snapshot = _make_cart().snapshot()

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.customer_id = "someone-else"

    def test_snapshot_survives_json(self):
        cart = _make_cart()
        cart.add_item("chew-toy", quantity=1, unit_price=5000, available_stock=5)
        snapshot = cart.snapshot()

        payload = snapshot.to_json()

        assert json.loads(payload)["lines"][0]["unit_price"] == 5000
        assert CartSnapshot.from_json(payload) == snapshot
