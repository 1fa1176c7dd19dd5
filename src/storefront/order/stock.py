"""Stock movements for orders.

Decrements for a whole order are all-or-nothing: if any line cannot be taken,
the lines already taken are returned before the error propagates. Every line
is attempted even when an earlier one fails; the failed lines are then
reported together as a fatal error that is never swallowed.
"""

from storefront.catalog.port import CatalogGateway
from storefront.domain import logger
from storefront.errors import InsufficientStock, StockChanged, StockRollbackFailed


def take_stock(catalog: CatalogGateway, lines) -> list[tuple[str, int]]:
    """Decrement stock for every ``(product_id, quantity)`` in ``lines``."""
    taken: list[tuple[str, int]] = []
    for product_id, quantity in lines:
        try:
            catalog.decrement_stock(product_id, quantity)
        except InsufficientStock as exc:
            return_stock(catalog, taken)
            raise StockChanged(product_id, requested=quantity, available=exc.details["available"]) from exc
        except Exception:
            return_stock(catalog, taken)
            raise
        taken.append((str(product_id), quantity))
    return taken


def return_stock(catalog: CatalogGateway, taken) -> None:
    """Restock every line in ``taken``, then report all lines that could not be returned."""
    failures = []
    for product_id, quantity in reversed(list(taken)):
        try:
            catalog.restock(product_id, quantity)
        except Exception as exc:
            logger.error(
                "stock_rollback_failed",
                product_id=str(product_id),
                quantity=quantity,
                error=str(exc),
            )
            failures.append((str(product_id), quantity, str(exc)))

    if failures:
        raise StockRollbackFailed(failures)
