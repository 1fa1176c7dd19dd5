"""Domain events for the PaymentIntent aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="PaymentIntent")
class PaymentIntentCreated:
    __version__ = 1

    payment_intent_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    provider = String(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentIntentOpened:
    """The provider accepted the intent and handed back a reference and approval URL."""

    __version__ = 1

    payment_intent_id = Identifier(required=True)
    order_id = Identifier(required=True)
    provider_reference = String(required=True)
    approval_url = String(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentIntentResolved:
    """The intent reached a terminal status (VERIFIED, FAILED, CANCELLED, EXPIRED)."""

    __version__ = 1

    payment_intent_id = Identifier(required=True)
    order_id = Identifier(required=True)
    provider_reference = String()
    status = String(required=True)
    failure_reason = String()
    resolved_at = DateTime(required=True)
