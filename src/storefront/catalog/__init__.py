"""Catalog gateway factory.

``get_catalog()`` / ``set_catalog()`` swap the active catalog adapter. The
in-memory catalog is the default.
"""

from storefront.catalog.memory_adapter import InMemoryCatalog
from storefront.catalog.port import CatalogGateway

_current_catalog: CatalogGateway | None = None


def get_catalog() -> CatalogGateway:
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogGateway) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
