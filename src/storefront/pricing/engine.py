"""Pricing engine: a pure function from cart lines to a price breakdown.

All amounts are integer minor units. Tax is charged on the merchandise
subtotal only, never on shipping, and is rounded half-up to one minor unit.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum

from storefront.config import StorefrontSettings, get_settings
from storefront.shared.money import apply_rate, to_minor


class ShippingOption(Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


@dataclass(frozen=True)
class PricingPolicy:
    free_shipping_threshold: int = 50000
    standard_shipping_fee: int = 5999
    express_shipping_fee: int = 14900
    tax_rate: Decimal = Decimal("0.08")
    currency: str = "INR"

    @classmethod
    def from_settings(cls, settings: StorefrontSettings | None = None) -> "PricingPolicy":
        settings = settings or get_settings()
        return cls(
            free_shipping_threshold=to_minor(settings.free_shipping_threshold),
            standard_shipping_fee=to_minor(settings.standard_shipping_fee),
            express_shipping_fee=to_minor(settings.express_shipping_fee),
            tax_rate=settings.tax_rate,
            currency=settings.currency,
        )

    def shipping_for(self, subtotal: int, option: ShippingOption) -> int:
        if option == ShippingOption.EXPRESS:
            return self.express_shipping_fee
        if subtotal >= self.free_shipping_threshold:
            return 0
        return self.standard_shipping_fee


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: int
    shipping_cost: int
    tax: int
    total: int
    currency: str

    def to_dict(self) -> dict:
        return asdict(self)


def price(lines: Iterable, shipping_option=ShippingOption.STANDARD, policy: PricingPolicy | None = None) -> PriceBreakdown:
    """Price ``lines`` (anything with ``unit_price`` and ``quantity``).

    ``shipping_option`` may be a ``ShippingOption`` or its string value.
    """
    policy = policy or PricingPolicy.from_settings()
    option = ShippingOption(shipping_option) if not isinstance(shipping_option, ShippingOption) else shipping_option

    subtotal = sum(line.unit_price * line.quantity for line in lines)
    shipping_cost = policy.shipping_for(subtotal, option)
    tax = apply_rate(subtotal, policy.tax_rate)

    return PriceBreakdown(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total=subtotal + shipping_cost + tax,
        currency=policy.currency,
    )
