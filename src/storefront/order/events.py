"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """Checkout succeeded: stock was taken and the order is PLACED / PENDING."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: [{product_id, vendor_id, quantity, unit_price, line_total}]
    subtotal = Integer(required=True)
    shipping_cost = Integer(required=True)
    tax = Integer(required=True)
    total = Integer(required=True)
    currency = String(required=True)
    shipping_option = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_type = String(required=True)
    actor_id = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled. Stock for every line is returned to the catalog."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String(required=True)
    lines = Text(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    payment_intent_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    paid_at = DateTime(required=True)
