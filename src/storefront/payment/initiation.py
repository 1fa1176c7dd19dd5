"""Payment intent creation.

``create_payment_intent`` runs three short transactions around the provider
call, so no unit of work is open while the provider is contacted:

1. ``OpenPaymentIntent`` commits the intent in CREATED, or finds the open one.
2. The provider creates its side of the payment.
3. ``AttachProviderReference`` records the reference and approval URL, or
   ``MarkPaymentIntentFailed`` records a rejection.

A crash or timeout during step 2 leaves the CREATED intent behind, and a
later request for the same order reuses it instead of opening a second one.
"""

from dataclasses import replace

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.errors import ProviderRejected
from storefront.order.order import Order
from storefront.payment.gateway import get_provider
from storefront.payment.intent import IntentView, PaymentIntent
from storefront.payment.retry import call_with_retries
from storefront.utils.locks import intent_locks, order_locks


@storefront.command(part_of="PaymentIntent")
class OpenPaymentIntent:
    order_id = Identifier(required=True)
    amount = Integer(required=True)  # minor units, must equal the order total
    currency = String(required=True, max_length=3)
    provider = String(required=True, max_length=30)


@storefront.command(part_of="PaymentIntent")
class AttachProviderReference:
    payment_intent_id = Identifier(required=True)
    provider_reference = String(required=True, max_length=255)
    approval_url = String(required=True, max_length=2000)


@storefront.command(part_of="PaymentIntent")
class MarkPaymentIntentFailed:
    payment_intent_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@storefront.command_handler(part_of=PaymentIntent)
class PaymentIntentInitiationHandler:
    @handle(OpenPaymentIntent)
    def open_payment_intent(self, command):
        order = current_domain.repository_for(Order).load(command.order_id)
        order.assert_payable(command.amount, command.currency)

        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.open_for_order(order.id)
        if intent is not None:
            return IntentView.of(intent, reused=True)

        intent = PaymentIntent.create(order, command.provider)
        intents.add(intent)
        return IntentView.of(intent)

    @handle(AttachProviderReference)
    def attach_provider_reference(self, command):
        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.load(command.payment_intent_id)
        intent.attach_provider_reference(command.provider_reference, command.approval_url)
        intents.add(intent)

        orders = current_domain.repository_for(Order)
        order = orders.load(intent.order_id)
        order.attach_payment_intent(str(intent.id))
        orders.add(order)
        return IntentView.of(intent)

    @handle(MarkPaymentIntentFailed)
    def mark_payment_intent_failed(self, command):
        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.load(command.payment_intent_id)
        intent.mark_failed(command.reason)
        intents.add(intent)
        return IntentView.of(intent)


def create_payment_intent(order_id, amount: int, currency: str) -> IntentView:
    """Open (or reuse) the order's payment intent and register it with the provider."""
    provider = get_provider()

    with order_locks.hold(order_id):
        pending = current_domain.process(
            OpenPaymentIntent(order_id=order_id, amount=amount, currency=currency, provider=provider.name),
            asynchronous=False,
        )
        if pending.provider_reference:
            logger.info(
                "payment_intent_reused",
                payment_intent_id=pending.payment_intent_id,
                order_number=pending.order_number,
                provider_reference=pending.provider_reference,
            )
            return pending

        intent_id = pending.payment_intent_id
        with intent_locks.hold(intent_id):
            try:
                opened = call_with_retries(
                    lambda: provider.create_intent(pending.amount, pending.currency, intent_id),
                    action="create_intent",
                    payment_intent_id=intent_id,
                    order_id=str(order_id),
                )
            except ProviderRejected as exc:
                current_domain.process(
                    MarkPaymentIntentFailed(
                        payment_intent_id=intent_id,
                        reason=exc.details.get("reason", exc.message),
                    ),
                    asynchronous=False,
                )
                logger.warning(
                    "payment_intent_rejected",
                    payment_intent_id=intent_id,
                    order_id=str(order_id),
                    reason=exc.message,
                )
                raise

            view = current_domain.process(
                AttachProviderReference(
                    payment_intent_id=intent_id,
                    provider_reference=opened.provider_reference,
                    approval_url=opened.approval_url,
                ),
                asynchronous=False,
            )

    logger.info(
        "payment_intent_created",
        payment_intent_id=intent_id,
        order_number=view.order_number,
        provider=provider.name,
        provider_reference=view.provider_reference,
        amount=view.amount,
        currency=view.currency,
    )
    return replace(view, reused=pending.reused)
