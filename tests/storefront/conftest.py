import json

import pytest
from protean.integrations.pytest import DomainFixture

VENDOR_PAWS = "vendor-paws"
VENDOR_TOYS = "vendor-toys"

ADDRESS = {
    "recipient_name": "Asha Rao",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postal_code": "560001",
    "country": "India",
    "phone": "9876543210",
}


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield
        _reset_infrastructure()


def _reset_infrastructure():
    """Clear repositories, the event store and adapter singletons after every test."""
    from protean import current_domain
    from storefront.catalog import reset_catalog
    from storefront.config import get_settings
    from storefront.payment.gateway import reset_provider

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()

    reset_catalog()
    reset_provider()
    get_settings.cache_clear()


@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture()
def catalog():
    """An in-memory catalog with a small pet-supplies range, installed as the active catalog.

    Prices are in minor units.
    """
    from storefront.catalog import set_catalog
    from storefront.catalog.memory_adapter import InMemoryCatalog

    catalog = InMemoryCatalog()
    catalog.add_product("kibble-10kg", name="Kibble 10kg", price=10000, stock=10, vendor_id=VENDOR_PAWS)
    catalog.add_product("cat-litter", name="Clumping Cat Litter", price=20000, stock=3, vendor_id=VENDOR_PAWS)
    catalog.add_product("chew-toy", name="Rubber Chew Toy", price=5000, stock=5, vendor_id=VENDOR_TOYS)
    catalog.add_product("leather-collar", name="Leather Collar", price=1500, stock=10, vendor_id=VENDOR_TOYS, active=False)
    catalog.add_product("bird-seed", name="Bird Seed", price=2500, stock=0, vendor_id=VENDOR_TOYS)
    set_catalog(catalog)
    return catalog


@pytest.fixture()
def provider():
    from storefront.payment.gateway import set_provider
    from storefront.payment.gateway.fake_adapter import FakeProvider

    fake = FakeProvider()
    set_provider(fake)
    return fake


@pytest.fixture()
def fill_cart(catalog):
    """``fill_cart(customer_id, {product_id: qty})`` adds items through the cart commands."""
    from protean import current_domain
    from storefront.cart.items import AddItem

    def _fill(customer_id, quantities):
        for product_id, quantity in quantities.items():
            current_domain.process(
                AddItem(customer_id=customer_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )

    return _fill


@pytest.fixture()
def checkout(fill_cart):
    """``checkout(customer_id, {product_id: qty}, ...)`` fills a cart and places the order.

    Returns the new order id.
    """
    from protean import current_domain
    from storefront.cart.cart import ShoppingCart
    from storefront.order.placement import PlaceOrder

    def _checkout(customer_id, quantities=None, shipping_option="STANDARD", idempotency_key=None):
        if quantities:
            fill_cart(customer_id, quantities)
        snapshot = current_domain.repository_for(ShoppingCart).snapshot_for(customer_id)
        return current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                snapshot=snapshot.to_json(),
                shipping_address=json.dumps(ADDRESS),
                payment_method="PAYPAL",
                shipping_option=shipping_option,
                idempotency_key=idempotency_key,
            ),
            asynchronous=False,
        )

    return _checkout
