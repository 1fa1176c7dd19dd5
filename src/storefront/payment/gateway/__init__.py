"""Payment provider factory.

``get_provider()`` builds the adapter named by ``PAYMENT_PROVIDER`` on first
use (``fake`` by default, or ``paypal``); ``set_provider()`` swaps it in tests.
"""

from storefront.config import get_settings
from storefront.payment.gateway.fake_adapter import FakeProvider
from storefront.payment.gateway.port import PaymentProvider

_current_provider: PaymentProvider | None = None


def build_provider(name: str | None = None) -> PaymentProvider:
    settings = get_settings()
    name = (name or settings.payment_provider).lower()
    if name == "paypal":
        from storefront.payment.gateway.paypal_adapter import PayPalProvider

        return PayPalProvider.from_settings(settings)
    if name == "fake":
        return FakeProvider(return_url=settings.paypal_return_url)
    raise ValueError(f"Unknown payment provider: {name}")


def get_provider() -> PaymentProvider:
    global _current_provider
    if _current_provider is None:
        _current_provider = build_provider()
    return _current_provider


def set_provider(provider: PaymentProvider) -> None:
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    global _current_provider
    _current_provider = None
