"""Order cancellation: command and handler.

Dispatched under the order lock. Stock for every line is returned to the
catalog before the handler's unit of work commits the cancellation.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.catalog import get_catalog
from storefront.domain import logger, storefront
from storefront.order.order import ActorType, Order
from storefront.order.stock import return_stock
from storefront.utils.locks import order_locks, serialized_on


@serialized_on(order_locks, "order_id")
@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_type = String(required=True, max_length=20, default=ActorType.CUSTOMER.value)
    actor_id = String(max_length=255)
    reason = String(max_length=500)


def restock_order(order) -> None:
    return_stock(get_catalog(), [(str(line.product_id), line.quantity) for line in order.lines])


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        previous = order.cancel(
            actor_type=command.actor_type,
            actor_id=command.actor_id,
            reason=command.reason,
        )
        repo.add(order)
        restock_order(order)

        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            previous_status=previous,
            cancelled_by=order.cancelled_by,
            paid=order.is_paid,
        )
        return order.status
