"""Repository for the PaymentIntent aggregate."""

from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.errors import PaymentIntentNotFound
from storefront.payment.intent import IntentStatus, PaymentIntent


@storefront.repository(part_of=PaymentIntent)
class PaymentIntentRepository:
    def load(self, payment_intent_id) -> PaymentIntent:
        try:
            return self.get(str(payment_intent_id))
        except ObjectNotFoundError:
            raise PaymentIntentNotFound(payment_intent_id) from None

    def by_provider_reference(self, provider_reference: str) -> PaymentIntent:
        intents = self._dao.query.filter(provider_reference=provider_reference).all().items
        if not intents:
            raise PaymentIntentNotFound(provider_reference)
        return intents[0]

    def for_order(self, order_id) -> list[PaymentIntent]:
        return self._dao.query.filter(order_id=str(order_id)).order_by("created_at").all().items

    def open_for_order(self, order_id) -> PaymentIntent | None:
        intents = self._dao.query.filter(order_id=str(order_id), status=IntentStatus.CREATED.value).all().items
        return intents[0] if intents else None

    def open_intents(self) -> list[PaymentIntent]:
        return self._dao.query.filter(status=IntentStatus.CREATED.value).all().items
