"""Catalog port.

The storefront never owns product data; it reads prices and stock and moves
stock counters through this interface. All stock mutations go through
``decrement_stock`` / ``restock`` so that the counter guard lives in the
adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductInfo:
    product_id: str
    name: str
    price: int  # minor units
    stock: int
    active: bool
    vendor_id: str


class CatalogGateway(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> ProductInfo:
        """Return the current product view. Raises ``ProductNotFound``."""
        ...

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Atomically take ``quantity`` units. Raises ``InsufficientStock``.

        Returns the remaining stock.
        """
        ...

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> int:
        """Return ``quantity`` units to stock and report the new level."""
        ...
