"""Checkout: turn a cart snapshot into a PLACED order.

Dispatched under the customer lock, the same one cart mutations use, so cart
clearing and order creation happen as one step. The live cart must still
match the submitted snapshot: a second submit of a stale snapshot sees an
empty cart, a changed cart or the reduced stock, and places nothing.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import CartSnapshot, ShoppingCart
from storefront.catalog import get_catalog
from storefront.domain import logger, storefront
from storefront.errors import CartChanged, EmptyCart, NotAuthorized, ProductUnavailable, StockChanged
from storefront.order.order import Order, generate_order_number
from storefront.order.stock import return_stock, take_stock
from storefront.pricing.engine import ShippingOption, price
from storefront.utils.locks import customer_locks, serialized_on

_ORDER_NUMBER_ATTEMPTS = 5


@serialized_on(customer_locks, "customer_id")
@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    snapshot = Text(required=True)  # CartSnapshot JSON
    shipping_address = Text(required=True)  # JSON object
    payment_method = String(max_length=50, default="PAYPAL")
    shipping_option = String(max_length=20, default=ShippingOption.STANDARD.value)
    idempotency_key = String(max_length=255)


def _verified_lines(catalog, snapshot: CartSnapshot) -> list[dict]:
    """Re-read every product and enrich snapshot lines with vendor data."""
    lines = []
    for line in snapshot.lines:
        product = catalog.get_product(line.product_id)
        if not product.active:
            raise ProductUnavailable(line.product_id)
        if product.stock < line.quantity:
            raise StockChanged(line.product_id, requested=line.quantity, available=product.stock)
        lines.append(
            {
                "product_id": line.product_id,
                "vendor_id": product.vendor_id,
                "product_name": product.name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
            }
        )
    return lines


def _unique_order_number(orders) -> str:
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        if not orders.order_number_taken(candidate):
            return candidate
    raise RuntimeError("Could not allocate a unique order number")


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        snapshot = CartSnapshot.from_json(command.snapshot)
        if snapshot.customer_id != str(command.customer_id):
            raise NotAuthorized("Cart snapshot belongs to another customer", customer_id=str(command.customer_id))

        orders = current_domain.repository_for(Order)
        if command.idempotency_key:
            existing = orders.by_idempotency_key(command.customer_id, command.idempotency_key)
            if existing is not None:
                logger.info(
                    "checkout_replayed",
                    order_id=str(existing.id),
                    order_number=existing.order_number,
                    idempotency_key=command.idempotency_key,
                )
                return str(existing.id)

        carts = current_domain.repository_for(ShoppingCart)
        cart = carts.for_customer(command.customer_id)
        if snapshot.is_empty or cart is None or not cart.items:
            raise EmptyCart(command.customer_id)
        if not cart.snapshot().same_lines_as(snapshot):
            logger.warning("checkout_snapshot_stale", customer_id=str(command.customer_id))
            raise CartChanged(command.customer_id)

        catalog = get_catalog()
        lines = _verified_lines(catalog, snapshot)
        breakdown = price(snapshot.lines, command.shipping_option)
        order = Order.place(
            customer_id=command.customer_id,
            order_number=_unique_order_number(orders),
            lines=lines,
            shipping_address=json.loads(command.shipping_address),
            breakdown=breakdown,
            payment_method=command.payment_method,
            shipping_option=command.shipping_option,
            idempotency_key=command.idempotency_key,
        )

        # Stock is taken last so nothing above can leave it decremented
        taken = take_stock(catalog, [(line["product_id"], line["quantity"]) for line in lines])
        try:
            orders.add(order)
            cart.clear()
            carts.add(cart)
        except Exception:
            return_stock(catalog, taken)
            raise

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=breakdown.total,
            currency=breakdown.currency,
            lines=len(lines),
        )
        return str(order.id)
