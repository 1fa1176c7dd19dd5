"""Fulfillment progression: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.order.cancellation import restock_order
from storefront.order.order import Order, OrderStatus
from storefront.utils.locks import order_locks, serialized_on


@serialized_on(order_locks, "order_id")
@storefront.command(part_of="Order")
class AdvanceFulfillment:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=20)
    actor_type = String(required=True, max_length=20)
    actor_id = String(max_length=255)


@storefront.command_handler(part_of=Order)
class AdvanceFulfillmentHandler:
    @handle(AdvanceFulfillment)
    def advance_fulfillment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        previous = order.advance_fulfillment(
            command.target_status,
            actor_type=command.actor_type,
            actor_id=command.actor_id,
        )
        repo.add(order)

        if order.status == OrderStatus.CANCELLED.value:
            restock_order(order)

        logger.info(
            "order_fulfillment_advanced",
            order_id=str(order.id),
            order_number=order.order_number,
            from_status=previous,
            to_status=order.status,
            actor_type=command.actor_type,
            actor_id=command.actor_id,
        )
        return order.status
