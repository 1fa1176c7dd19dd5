"""Repository for the ShoppingCart aggregate."""

from datetime import UTC, datetime

from storefront.cart.cart import CartSnapshot, ShoppingCart
from storefront.domain import storefront


@storefront.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def for_customer_or_new(self, customer_id) -> ShoppingCart:
        return self.for_customer(customer_id) or ShoppingCart.create(customer_id=customer_id)

    def snapshot_for(self, customer_id) -> CartSnapshot:
        """Read-only copy of the customer's cart. Takes no lock."""
        cart = self.for_customer(customer_id)
        if cart is None:
            return CartSnapshot(customer_id=str(customer_id), taken_at=datetime.now(UTC).isoformat())
        return cart.snapshot()
