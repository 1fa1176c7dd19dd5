"""Storefront error taxonomy.

Every error subclasses Protean's ``ValidationError`` so the ``messages`` dict
convention used across handlers and tests still holds, and additionally
carries a stable ``code``, a ``category`` and structured ``details``. The API
layer maps categories to HTTP status codes.
"""

from enum import Enum
from typing import Any

from protean.exceptions import ValidationError


class ErrorCategory(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    FATAL = "fatal"


class StorefrontError(ValidationError):
    code = "storefront_error"
    category = ErrorCategory.CONFLICT
    field = "_entity"

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__({self.field: [message]})

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class InvalidQuantity(StorefrontError):
    code = "invalid_quantity"
    category = ErrorCategory.VALIDATION
    field = "quantity"

    def __init__(self, quantity: int) -> None:
        super().__init__(f"Quantity must be at least 1, got {quantity}", quantity=quantity)


class EmptyCart(StorefrontError):
    code = "empty_cart"
    category = ErrorCategory.VALIDATION
    field = "items"

    def __init__(self, customer_id: str) -> None:
        super().__init__("Cart is empty", customer_id=str(customer_id))


class AmountMismatch(StorefrontError):
    code = "amount_mismatch"
    category = ErrorCategory.VALIDATION
    field = "amount"

    def __init__(self, order_number: str, expected: int, expected_currency: str, got: int, got_currency: str) -> None:
        super().__init__(
            f"Payment amount {got} {got_currency} does not match order {order_number} total "
            f"{expected} {expected_currency}",
            order_number=order_number,
            expected=expected,
            expected_currency=expected_currency,
            got=got,
            got_currency=got_currency,
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class ProductNotFound(StorefrontError):
    code = "product_not_found"
    category = ErrorCategory.NOT_FOUND
    field = "product_id"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found", product_id=str(product_id))


class CartItemNotFound(StorefrontError):
    code = "cart_item_not_found"
    category = ErrorCategory.NOT_FOUND
    field = "cart_item_id"

    def __init__(self, cart_item_id: str) -> None:
        super().__init__(f"Cart item {cart_item_id} not found", cart_item_id=str(cart_item_id))


class OrderNotFound(StorefrontError):
    code = "order_not_found"
    category = ErrorCategory.NOT_FOUND
    field = "order"

    def __init__(self, reference: str) -> None:
        super().__init__(f"Order {reference} not found", reference=str(reference))


class PaymentIntentNotFound(StorefrontError):
    code = "payment_intent_not_found"
    category = ErrorCategory.NOT_FOUND
    field = "provider_reference"

    def __init__(self, reference: str) -> None:
        super().__init__(f"Payment intent {reference} not found", reference=str(reference))


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------
class ProductUnavailable(StorefrontError):
    code = "product_unavailable"
    field = "product_id"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} is not available", product_id=str(product_id))


class OutOfStock(StorefrontError):
    code = "out_of_stock"
    field = "quantity"

    def __init__(self, product_id: str) -> None:
        super().__init__(
            f"Product {product_id} is out of stock",
            product_id=str(product_id),
            requested=None,
            available=0,
        )


class InsufficientStock(StorefrontError):
    code = "insufficient_stock"
    field = "quantity"

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            product_id=str(product_id),
            requested=requested,
            available=available,
        )


class StockChanged(StorefrontError):
    code = "stock_changed"
    field = "items"

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Stock changed for product {product_id}: requested {requested}, available {available}",
            product_id=str(product_id),
            requested=requested,
            available=available,
        )


class CartChanged(StorefrontError):
    """The cart no longer holds what the submitted snapshot describes."""

    code = "cart_changed"
    field = "items"

    def __init__(self, customer_id: str) -> None:
        super().__init__("Cart changed since checkout started", customer_id=str(customer_id))


class InvalidTransition(StorefrontError):
    code = "invalid_transition"
    field = "status"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            current=current,
            requested=requested,
        )


class AlreadyPaid(StorefrontError):
    code = "already_paid"
    field = "payment_status"

    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} is already paid", order_number=order_number)


class NotAuthorized(StorefrontError):
    code = "not_authorized"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, **details)


class ProviderRejected(StorefrontError):
    """The provider refused the payment. The customer was not charged and may retry."""

    code = "provider_rejected"
    field = "payment"

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(f"Payment was rejected by the provider: {reason}", reason=reason, **details)


# ---------------------------------------------------------------------------
# Transient
# ---------------------------------------------------------------------------
class ProviderUnreachable(StorefrontError):
    """The provider could not be reached or gave no definite answer. Do not retry yet."""

    code = "provider_unreachable"
    category = ErrorCategory.TRANSIENT
    field = "payment"

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(f"Payment provider unreachable: {reason}", reason=reason, **details)


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------
class StockRollbackFailed(StorefrontError):
    code = "stock_rollback_failed"
    category = ErrorCategory.FATAL
    field = "stock"

    def __init__(self, failures: list[tuple[str, int, str]]) -> None:
        summary = ", ".join(f"{quantity} units of product {product_id}" for product_id, quantity, _ in failures)
        super().__init__(
            f"Could not restore {summary}",
            failures=[
                {"product_id": product_id, "quantity": quantity, "cause": cause}
                for product_id, quantity, cause in failures
            ],
        )
