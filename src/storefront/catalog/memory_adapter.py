"""In-process catalog used for development and tests."""

import threading

from storefront.catalog.port import CatalogGateway, ProductInfo
from storefront.errors import InsufficientStock, ProductNotFound


class InMemoryCatalog(CatalogGateway):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._products: dict[str, ProductInfo] = {}
        self.calls: list[dict] = []

    def add_product(
        self,
        product_id: str,
        price: int,
        stock: int,
        vendor_id: str,
        name: str = "",
        active: bool = True,
    ) -> ProductInfo:
        product = ProductInfo(
            product_id=str(product_id),
            name=name or str(product_id),
            price=price,
            stock=stock,
            active=active,
            vendor_id=str(vendor_id),
        )
        with self._lock:
            self._products[product.product_id] = product
        return product

    def set_stock(self, product_id: str, stock: int) -> None:
        self._replace(product_id, stock=stock)

    def set_active(self, product_id: str, active: bool) -> None:
        self._replace(product_id, active=active)

    def set_price(self, product_id: str, price: int) -> None:
        self._replace(product_id, price=price)

    def _replace(self, product_id: str, **changes) -> ProductInfo:
        with self._lock:
            current = self._get(product_id)
            updated = ProductInfo(**{**current.__dict__, **changes})
            self._products[updated.product_id] = updated
            return updated

    def _get(self, product_id: str) -> ProductInfo:
        try:
            return self._products[str(product_id)]
        except KeyError:
            raise ProductNotFound(product_id) from None

    def get_product(self, product_id: str) -> ProductInfo:
        with self._lock:
            return self._get(product_id)

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            self.calls.append({"method": "decrement_stock", "product_id": str(product_id), "quantity": quantity})
            current = self._get(product_id)
            if current.stock < quantity:
                raise InsufficientStock(product_id, requested=quantity, available=current.stock)
            return self._replace(product_id, stock=current.stock - quantity).stock

    def restock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            self.calls.append({"method": "restock", "product_id": str(product_id), "quantity": quantity})
            current = self._get(product_id)
            return self._replace(product_id, stock=current.stock + quantity).stock
