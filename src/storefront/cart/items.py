"""Cart item management: commands and handler.

Every mutation is dispatched under the customer lock: load the cart,
re-read the product from the catalog, mutate, commit. Stock levels are never
taken from the command or from an earlier read.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.catalog import get_catalog
from storefront.domain import logger, storefront
from storefront.errors import InvalidQuantity, ProductUnavailable
from storefront.utils.locks import customer_locks, serialized_on


@serialized_on(customer_locks, "customer_id")
@storefront.command(part_of="ShoppingCart")
class AddItem:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@serialized_on(customer_locks, "customer_id")
@storefront.command(part_of="ShoppingCart")
class UpdateQuantity:
    customer_id = Identifier(required=True)
    cart_item_id = Identifier(required=True)
    quantity = Integer(required=True)


@serialized_on(customer_locks, "customer_id")
@storefront.command(part_of="ShoppingCart")
class RemoveItem:
    customer_id = Identifier(required=True)
    cart_item_id = Identifier(required=True)


@serialized_on(customer_locks, "customer_id")
@storefront.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class CartItemsHandler:
    @handle(AddItem)
    def add_item(self, command):
        if command.quantity < 1:
            raise InvalidQuantity(command.quantity)

        product = get_catalog().get_product(command.product_id)
        if not product.active:
            raise ProductUnavailable(command.product_id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer_or_new(command.customer_id)
        item = cart.add_item(
            product_id=product.product_id,
            quantity=command.quantity,
            unit_price=product.price,
            available_stock=product.stock,
        )
        repo.add(cart)

        logger.info(
            "cart_item_added",
            customer_id=str(command.customer_id),
            product_id=product.product_id,
            quantity=command.quantity,
            line_quantity=item.quantity,
        )
        return str(item.id)

    @handle(UpdateQuantity)
    def update_quantity(self, command):
        if command.quantity < 1:
            raise InvalidQuantity(command.quantity)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer_or_new(command.customer_id)
        item = cart.item(command.cart_item_id)
        product = get_catalog().get_product(item.product_id)
        cart.update_quantity(command.cart_item_id, command.quantity, available_stock=product.stock)
        repo.add(cart)

        logger.info(
            "cart_item_quantity_updated",
            customer_id=str(command.customer_id),
            cart_item_id=str(command.cart_item_id),
            quantity=command.quantity,
        )

    @handle(RemoveItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None or not cart.remove_item(command.cart_item_id):
            return False
        repo.add(cart)

        logger.info("cart_item_removed", customer_id=str(command.customer_id), cart_item_id=str(command.cart_item_id))
        return True

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            return 0
        removed = cart.clear()
        if removed:
            repo.add(cart)

        logger.info("cart_cleared", customer_id=str(command.customer_id), items_removed=removed)
        return removed
