"""Shopping Cart aggregate: one mutable cart per customer.

Carts are created lazily on the first add, are never deleted, and are emptied
when checkout succeeds. Stock is never cached here: the handlers re-read the
catalog inside the customer's serialized section and pass the current level
in, so the aggregate can enforce ``quantity <= stock`` at the moment of every
mutation.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

from protean.fields import DateTime, HasMany, Identifier, Integer

from storefront.cart.events import CartCleared, CartItemAdded, CartItemQuantityUpdated, CartItemRemoved
from storefront.domain import storefront
from storefront.errors import CartItemNotFound, InsufficientStock, InvalidQuantity, OutOfStock


@dataclass(frozen=True)
class SnapshotLine:
    product_id: str
    quantity: int
    unit_price: int  # minor units

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """Immutable, JSON-serializable copy of a cart at one instant."""

    customer_id: str
    lines: tuple[SnapshotLine, ...] = field(default_factory=tuple)
    taken_at: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def same_lines_as(self, other: "CartSnapshot") -> bool:
        """Same products, quantities and unit prices, in any order."""
        return sorted(self.lines, key=lambda line: line.product_id) == sorted(
            other.lines, key=lambda line: line.product_id
        )

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "lines": [asdict(line) for line in self.lines],
            "taken_at": self.taken_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "CartSnapshot":
        return cls(
            customer_id=str(data["customer_id"]),
            lines=tuple(
                SnapshotLine(
                    product_id=str(line["product_id"]),
                    quantity=int(line["quantity"]),
                    unit_price=int(line["unit_price"]),
                )
                for line in data.get("lines", [])
            ),
            taken_at=data.get("taken_at", ""),
        )

    @classmethod
    def from_json(cls, payload: str) -> "CartSnapshot":
        return cls.from_dict(json.loads(payload))


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # minor units, fixed at add time
    added_at = DateTime()


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    last_modified_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, last_modified_at=now)

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise CartItemNotFound(item_id)
        return item

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price, available_stock):
        """Add ``quantity`` units, summing into an existing line for the same product."""
        if quantity < 1:
            raise InvalidQuantity(quantity)
        if available_stock <= 0:
            raise OutOfStock(product_id)

        existing = self.line_for(product_id)
        already_in_cart = existing.quantity if existing else 0
        if already_in_cart + quantity > available_stock:
            raise InsufficientStock(product_id, requested=already_in_cart + quantity, available=available_stock)

        now = datetime.now(UTC)
        if existing:
            # Price stays at the original snapshot
            existing.quantity = already_in_cart + quantity
            item = existing
        else:
            item = CartItem(product_id=product_id, quantity=quantity, unit_price=unit_price, added_at=now)
            self.add_items(item)

        self.last_modified_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=item.quantity,
                unit_price=item.unit_price,
            )
        )
        return item

    def update_quantity(self, item_id, new_quantity, available_stock):
        if new_quantity < 1:
            raise InvalidQuantity(new_quantity)

        item = self.item(item_id)
        if new_quantity > available_stock:
            raise InsufficientStock(item.product_id, requested=new_quantity, available=available_stock)

        previous = item.quantity
        item.quantity = new_quantity
        self.last_modified_at = datetime.now(UTC)
        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                previous_quantity=previous,
                new_quantity=new_quantity,
            )
        )
        return item

    def remove_item(self, item_id) -> bool:
        """Drop a line. Removing a line that is not there is a no-op."""
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            return False

        self.remove_items(item)
        self.last_modified_at = datetime.now(UTC)
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item_id),
                product_id=str(item.product_id),
            )
        )
        return True

    def clear(self) -> int:
        removed = len(self.items)
        if removed == 0:
            return 0

        for item in list(self.items):
            self.remove_items(item)
        self.last_modified_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id), items_removed=removed))
        return removed

    # -------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------
    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            customer_id=str(self.customer_id),
            lines=tuple(
                SnapshotLine(product_id=str(i.product_id), quantity=i.quantity, unit_price=i.unit_price)
                for i in self.items
            ),
            taken_at=datetime.now(UTC).isoformat(),
        )

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)
