"""Applying a verified payment to an order (used by the payment coordinator)."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.order.order import Order, OrderStatus
from storefront.utils.locks import order_locks, serialized_on


@serialized_on(order_locks, "order_id")
@storefront.command(part_of="Order")
class RecordPaymentVerified:
    order_id = Identifier(required=True)
    payment_intent_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPaymentVerified)
    def record_payment_verified(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        if not order.record_payment(command.payment_intent_id):
            return order.status
        repo.add(order)

        if order.status == OrderStatus.CANCELLED.value:
            # Money was taken for an order that no longer ships
            logger.warning(
                "payment_recorded_on_cancelled_order",
                order_id=str(order.id),
                order_number=order.order_number,
                payment_intent_id=str(command.payment_intent_id),
            )
        else:
            logger.info(
                "order_payment_recorded",
                order_id=str(order.id),
                order_number=order.order_number,
                payment_intent_id=str(command.payment_intent_id),
                status=order.status,
            )
        return order.status
