"""Repository for the Order aggregate."""

from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.errors import OrderNotFound
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def load(self, order_id) -> Order:
        """Fetch by id, translating Protean's not-found into ``OrderNotFound``."""
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(order_id) from None

    def by_order_number(self, order_number: str) -> Order:
        orders = self._dao.query.filter(order_number=order_number).all().items
        if not orders:
            raise OrderNotFound(order_number)
        return orders[0]

    def order_number_taken(self, order_number: str) -> bool:
        return bool(self._dao.query.filter(order_number=order_number).all().items)

    def by_idempotency_key(self, customer_id, idempotency_key: str) -> Order | None:
        orders = (
            self._dao.query.filter(customer_id=str(customer_id), idempotency_key=idempotency_key).all().items
        )
        return orders[0] if orders else None

    def for_customer(self, customer_id, limit: int = 100) -> list[Order]:
        """A customer's orders, newest first."""
        return (
            self._dao.query.filter(customer_id=str(customer_id))
            .order_by("-created_at")
            .limit(limit)
            .all()
            .items
        )
