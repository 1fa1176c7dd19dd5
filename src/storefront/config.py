"""Business settings for the storefront, read from ``STOREFRONT_*`` env vars.

Protean infrastructure (database, broker, event store) is configured in
``domain.toml``; this module only covers values the domain logic itself uses.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorefrontSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pricing (major units; converted to minor units by the pricing engine)
    currency: str = "INR"
    free_shipping_threshold: Decimal = Decimal("500.00")
    standard_shipping_fee: Decimal = Decimal("59.99")
    express_shipping_fee: Decimal = Decimal("149.00")
    tax_rate: Decimal = Decimal("0.08")

    # Payment provider
    payment_provider: str = Field(
        default="fake",
        validation_alias=AliasChoices("PAYMENT_PROVIDER", "STOREFRONT_PAYMENT_PROVIDER"),
    )
    provider_timeout_seconds: float = 10.0
    provider_max_attempts: int = 3
    provider_backoff_seconds: float = 0.5
    payment_intent_expiry_minutes: int = 30

    paypal_client_id: str = ""
    paypal_client_secret: str = ""
    paypal_base_url: str = "https://api-m.sandbox.paypal.com"
    paypal_return_url: str = "http://localhost:3000/payment/success"
    paypal_cancel_url: str = "http://localhost:3000/payment/cancel"


@lru_cache
def get_settings() -> StorefrontSettings:
    return StorefrontSettings()
