"""Order aggregate: the immutable, priced result of a checkout.

Lines, pricing and the shipping address are frozen at creation. Only the
fulfillment status, the payment status, the active payment intent and the
cancellation details change afterwards, and only through the methods below.

Fulfillment state machine (vendor-actionable targets marked *):
    PLACED    → CONFIRMED*, PACKED*, CANCELLED
    CONFIRMED → PACKED*, SHIPPED*, CANCELLED
    PACKED    → SHIPPED*, CANCELLED
    SHIPPED   → DELIVERED*, CANCELLED
    DELIVERED, CANCELLED are terminal

Payment runs on a separate axis (PENDING → PAID) so an order can be both
PLACED and PAID.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from storefront.domain import storefront
from storefront.errors import AlreadyPaid, AmountMismatch, InvalidTransition, NotAuthorized
from storefront.order.events import OrderCancelled, OrderPaid, OrderPlaced, OrderStatusChanged
from storefront.pricing.engine import ShippingOption


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        normalized = value.strip().upper()
        if normalized == "PROCESSING":
            return cls.PACKED
        return cls.__members__.get(normalized)


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class ActorType(Enum):
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.CONFIRMED, OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

_VENDOR_TARGETS = {OrderStatus.CONFIRMED, OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.DELIVERED}

# Customer-facing cancellation, independent of payment status
_CANCELLABLE_STATES = {OrderStatus.PLACED, OrderStatus.CONFIRMED}


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"ORD-{now:%Y%m%d%H%M%S}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships. Frozen on the order regardless of later profile edits."""

    recipient_name = String(required=True, max_length=150)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")
    phone = String(max_length=20)


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Price breakdown in minor units, frozen at checkout."""

    subtotal = Integer(required=True, min_value=0)
    shipping_cost = Integer(required=True, min_value=0)
    tax = Integer(required=True, min_value=0)
    total = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=40, unique=True)
    customer_id = Identifier(required=True)
    idempotency_key = String(max_length=255)
    lines = HasMany(OrderLine)
    shipping_address = ValueObject(ShippingAddress)
    pricing = ValueObject(OrderPricing)
    payment_method = String(max_length=50, default="PAYPAL")
    shipping_option = String(choices=ShippingOption, default=ShippingOption.STANDARD.value)
    status = String(choices=OrderStatus, default=OrderStatus.PLACED.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_intent_id = Identifier()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        order_number,
        lines,
        shipping_address,
        breakdown,
        payment_method,
        shipping_option,
        idempotency_key=None,
    ):
        """Create a PLACED / PENDING order.

        ``lines`` are dicts with product_id, vendor_id, quantity, unit_price and
        optionally product_name; ``breakdown`` is a ``PriceBreakdown``.
        """
        now = datetime.now(UTC)
        order_lines = [
            OrderLine(
                product_id=line["product_id"],
                vendor_id=line["vendor_id"],
                product_name=line.get("product_name"),
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                line_total=line["unit_price"] * line["quantity"],
            )
            for line in lines
        ]
        option = ShippingOption(shipping_option)

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            idempotency_key=idempotency_key,
            lines=order_lines,
            shipping_address=ShippingAddress(**shipping_address),
            pricing=OrderPricing(
                subtotal=breakdown.subtotal,
                shipping_cost=breakdown.shipping_cost,
                tax=breakdown.tax,
                total=breakdown.total,
                currency=breakdown.currency,
            ),
            payment_method=payment_method,
            shipping_option=option.value,
            status=OrderStatus.PLACED.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                lines=order.lines_json(),
                subtotal=breakdown.subtotal,
                shipping_cost=breakdown.shipping_cost,
                tax=breakdown.tax,
                total=breakdown.total,
                currency=breakdown.currency,
                shipping_option=option.value,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    @property
    def vendor_ids(self) -> set[str]:
        return {str(line.vendor_id) for line in self.lines}

    def has_vendor(self, vendor_id) -> bool:
        return str(vendor_id) in self.vendor_ids

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def lines_json(self) -> str:
        return json.dumps(
            [
                {
                    "product_id": str(line.product_id),
                    "vendor_id": str(line.vendor_id),
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "line_total": line.line_total,
                }
                for line in self.lines
            ]
        )

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _parse_target(self, target) -> OrderStatus:
        if isinstance(target, OrderStatus):
            return target
        try:
            return OrderStatus(target)
        except ValueError:
            raise InvalidTransition(self.status, str(target)) from None

    def _assert_can_transition(self, target: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

    def _move_to(self, target: OrderStatus, actor_type: ActorType, actor_id=None):
        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=previous,
                to_status=target.value,
                actor_type=actor_type.value,
                actor_id=str(actor_id) if actor_id else None,
                changed_at=now,
            )
        )
        return previous

    def advance_fulfillment(self, target, actor_type, actor_id=None):
        """Move along the fulfillment table on behalf of ``actor_type``.

        Vendors may only request vendor-actionable targets; admins and the
        system may additionally cancel. Returns the previous status.
        """
        actor = ActorType(actor_type)
        requested = self._parse_target(target)

        if actor == ActorType.CUSTOMER:
            raise NotAuthorized("Customers cannot change fulfillment status", order_id=str(self.id))
        if actor == ActorType.VENDOR and requested not in _VENDOR_TARGETS:
            raise InvalidTransition(self.status, requested.value)

        self._assert_can_transition(requested)
        if requested == OrderStatus.CANCELLED:
            return self._mark_cancelled(actor, actor_id, reason=None)
        return self._move_to(requested, actor, actor_id)

    def cancel(self, actor_type, actor_id=None, reason=None):
        actor = ActorType(actor_type)
        if actor == ActorType.CUSTOMER and not self.owned_by(actor_id):
            raise NotAuthorized("Order does not belong to user", order_id=str(self.id))

        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise InvalidTransition(current.value, OrderStatus.CANCELLED.value)
        return self._mark_cancelled(actor, actor_id, reason)

    def _mark_cancelled(self, actor: ActorType, actor_id, reason):
        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = actor.value
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=previous,
                reason=reason,
                cancelled_by=actor.value,
                lines=self.lines_json(),
                cancelled_at=now,
            )
        )
        return previous

    # -------------------------------------------------------------------
    # Payment axis
    # -------------------------------------------------------------------
    def assert_payable(self, amount, currency) -> None:
        if self.status == OrderStatus.CANCELLED.value:
            raise InvalidTransition(self.status, PaymentStatus.PAID.value)
        if self.is_paid:
            raise AlreadyPaid(self.order_number)
        if amount != self.pricing.total or (currency or "").upper() != self.pricing.currency.upper():
            raise AmountMismatch(
                self.order_number,
                expected=self.pricing.total,
                expected_currency=self.pricing.currency,
                got=amount,
                got_currency=currency or "",
            )

    def attach_payment_intent(self, payment_intent_id) -> None:
        self.payment_intent_id = payment_intent_id
        self.updated_at = datetime.now(UTC)

    def record_payment(self, payment_intent_id) -> bool:
        """Mark the order PAID and confirm it if it is still PLACED.

        Recording the same intent twice is a no-op and returns False; a
        different intent on a paid order raises ``AlreadyPaid``.
        """
        if self.is_paid:
            if str(self.payment_intent_id) == str(payment_intent_id):
                return False
            raise AlreadyPaid(self.order_number)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.payment_intent_id = payment_intent_id
        self.updated_at = now
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                payment_intent_id=str(payment_intent_id),
                amount=self.pricing.total,
                currency=self.pricing.currency,
                paid_at=now,
            )
        )
        if self.status == OrderStatus.PLACED.value:
            self._move_to(OrderStatus.CONFIRMED, ActorType.SYSTEM)
        return True
