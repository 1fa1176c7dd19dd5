"""Application tests for cart item management commands."""

import threading

import pytest
from protean import current_domain
from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddItem, ClearCart, RemoveItem, UpdateQuantity
from storefront.domain import storefront
from storefront.errors import (
    CartItemNotFound,
    InsufficientStock,
    InvalidQuantity,
    OutOfStock,
    ProductNotFound,
    ProductUnavailable,
)
from storefront.utils.locks import dispatch


def _add(customer_id="cust-001", product_id="kibble-10kg", quantity=1):
    return dispatch(AddItem(customer_id=customer_id, product_id=product_id, quantity=quantity))


def _cart(customer_id="cust-001"):
    return current_domain.repository_for(ShoppingCart).for_customer(customer_id)


class TestAddItemCommand:
    def test_first_add_creates_the_cart(self, catalog):
        item_id = _add(quantity=2)

        cart = _cart()
        assert cart is not None
        assert str(cart.items[0].id) == item_id
        assert cart.items[0].quantity == 2
        assert cart.items[0].unit_price == 10000

    def test_repeat_add_sums_into_one_line(self, catalog):
        _add(quantity=2)
        _add(quantity=3)

        cart = _cart()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_carts_are_per_customer(self, catalog):
        _add("cust-001", quantity=1)
        _add("cust-002", quantity=4)

        assert _cart("cust-001").items[0].quantity == 1
        assert _cart("cust-002").items[0].quantity == 4

    def test_unknown_product(self, catalog):
        with pytest.raises(ProductNotFound):
            _add(product_id="unicorn-food")

    def test_inactive_product(self, catalog):
        with pytest.raises(ProductUnavailable):
            _add(product_id="leather-collar")

    def test_out_of_stock_product(self, catalog):
        with pytest.raises(OutOfStock):
            _add(product_id="bird-seed")

        assert _cart() is None

    def test_existing_quantity_counts_against_stock(self, catalog):
        _add(product_id="chew-toy", quantity=3)

        with pytest.raises(InsufficientStock) as exc_info:
            _add(product_id="chew-toy", quantity=3)

        assert exc_info.value.details["requested"] == 6
        assert exc_info.value.details["available"] == 5
        assert _cart().items[0].quantity == 3

    def test_stock_is_read_at_mutation_time(self, catalog):
        _add(product_id="chew-toy", quantity=1)
        catalog.set_stock("chew-toy", 1)

        with pytest.raises(InsufficientStock):
            _add(product_id="chew-toy", quantity=1)

    def test_zero_quantity(self, catalog):
        with pytest.raises(InvalidQuantity):
            _add(quantity=0)

    def test_price_is_snapshotted_at_add_time(self, catalog):
        _add(quantity=1)
        catalog.set_price("kibble-10kg", 12000)

        assert _cart().items[0].unit_price == 10000
        assert current_domain.repository_for(ShoppingCart).snapshot_for("cust-001").lines[0].unit_price == 10000


class TestUpdateQuantityCommand:
    def test_update_persists(self, catalog):
        item_id = _add(quantity=1)

        current_domain.process(
            UpdateQuantity(customer_id="cust-001", cart_item_id=item_id, quantity=4),
            asynchronous=False,
        )

        assert _cart().items[0].quantity == 4

    def test_update_beyond_stock(self, catalog):
        item_id = _add(product_id="cat-litter", quantity=1)

        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateQuantity(customer_id="cust-001", cart_item_id=item_id, quantity=4),
                asynchronous=False,
            )

        assert _cart().items[0].quantity == 1

    def test_update_to_zero_is_rejected(self, catalog):
        item_id = _add(quantity=2)

        with pytest.raises(InvalidQuantity):
            current_domain.process(
                UpdateQuantity(customer_id="cust-001", cart_item_id=item_id, quantity=0),
                asynchronous=False,
            )

    def test_update_unknown_item(self, catalog):
        _add(quantity=1)

        with pytest.raises(CartItemNotFound):
            current_domain.process(
                UpdateQuantity(customer_id="cust-001", cart_item_id="missing", quantity=2),
                asynchronous=False,
            )

    def test_another_customers_item_is_not_found(self, catalog):
        item_id = _add("cust-001", quantity=1)

        with pytest.raises(CartItemNotFound):
            current_domain.process(
                UpdateQuantity(customer_id="cust-002", cart_item_id=item_id, quantity=2),
                asynchronous=False,
            )


class TestRemoveAndClearCommands:
    def test_remove_is_idempotent(self, catalog):
        item_id = _add(quantity=1)

        first = current_domain.process(RemoveItem(customer_id="cust-001", cart_item_id=item_id), asynchronous=False)
        second = current_domain.process(RemoveItem(customer_id="cust-001", cart_item_id=item_id), asynchronous=False)

        assert first is True
        assert second is False
        assert _cart().items == []

    def test_remove_without_cart(self, catalog):
        assert current_domain.process(RemoveItem(customer_id="nobody", cart_item_id="x"), asynchronous=False) is False

    def test_clear(self, catalog):
        _add(product_id="kibble-10kg", quantity=1)
        _add(product_id="chew-toy", quantity=1)

        removed = current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)

        assert removed == 2
        assert _cart().items == []

    def test_snapshot_of_missing_cart_is_empty(self):
        snapshot = current_domain.repository_for(ShoppingCart).snapshot_for("nobody")

        assert snapshot.is_empty
        assert snapshot.customer_id == "nobody"


@pytest.mark.slow
class TestConcurrentAdds:
    def test_same_customer_cannot_overcommit_stock(self, catalog):
        barrier = threading.Barrier(2)
        outcomes = []

        def worker():
            with storefront.domain_context():
                barrier.wait()
                try:
                    _add(product_id="chew-toy", quantity=3)
                    outcomes.append("ok")
                except InsufficientStock:
                    outcomes.append("insufficient")

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(outcomes) == ["insufficient", "ok"]
        assert _cart().items[0].quantity == 3
