"""Storefront bounded context: Cart, Order, Payment and Vendor Fulfillment.

Turns a mutable shopping cart into an immutable priced order, coordinates an
external payment provider, and advances the order through the vendor-managed
fulfillment state machine.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

configure_logging()

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
