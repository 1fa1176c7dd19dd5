"""Provider callback reconciliation.

``handle_provider_callback`` locates the intent by provider reference and
holds the order and intent locks while it verifies with the provider and
records the outcome. No unit of work is open during the provider call; the
order and the intent are each updated by their own command.

The first terminal outcome wins: once an intent is VERIFIED, FAILED,
CANCELLED or EXPIRED, every later callback (duplicate or out of order) gets
the stored result back with ``replayed=True`` and changes nothing.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.errors import InvalidTransition
from storefront.order.payment import RecordPaymentVerified
from storefront.payment.gateway import get_provider
from storefront.payment.intent import CallbackOutcome, CallbackResult, IntentStatus, PaymentIntent
from storefront.payment.retry import call_with_retries
from storefront.utils.locks import dispatch, intent_locks, order_locks


@storefront.command(part_of="PaymentIntent")
class ResolvePaymentIntent:
    payment_intent_id = Identifier(required=True)
    status = String(required=True, choices=IntentStatus)
    payer_reference = String(max_length=255)
    failure_reason = String(max_length=500)


@storefront.command_handler(part_of=PaymentIntent)
class PaymentIntentResolutionHandler:
    @handle(ResolvePaymentIntent)
    def resolve_payment_intent(self, command):
        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.load(command.payment_intent_id)

        status = IntentStatus(command.status)
        if status == IntentStatus.VERIFIED:
            intent.mark_verified(payer_reference=command.payer_reference)
        elif status == IntentStatus.CANCELLED:
            intent.mark_cancelled(payer_reference=command.payer_reference)
        elif status == IntentStatus.FAILED:
            intent.mark_failed(command.failure_reason, payer_reference=command.payer_reference)
        else:
            raise InvalidTransition(intent.status, status.value)

        intents.add(intent)
        return CallbackResult.of(intent)


def _outcome(value) -> CallbackOutcome:
    try:
        return CallbackOutcome(value)
    except ValueError:
        raise ValidationError({"outcome": [f"Unknown callback outcome {value!r}"]}) from None


def _verify(intent, provider_reference, payer_reference) -> tuple[IntentStatus, str | None]:
    """Confirm an APPROVED callback with the provider before trusting it.

    A ``ProviderUnreachable`` here propagates and leaves the intent CREATED.
    """
    provider = get_provider()
    intent_id = str(intent.id)
    verification = call_with_retries(
        lambda: provider.verify_intent(provider_reference, payer_reference),
        action="verify_intent",
        payment_intent_id=intent_id,
        provider_reference=provider_reference,
    )
    if not verification.approved:
        return IntentStatus.FAILED, verification.failure_reason or "Verification failed"

    # Order first: recording the same intent again is a no-op, so a replay
    # after a failed intent commit heals itself.
    dispatch(RecordPaymentVerified(order_id=str(intent.order_id), payment_intent_id=intent_id))
    return IntentStatus.VERIFIED, None


def handle_provider_callback(
    provider_reference: str,
    outcome,
    payer_reference: str | None = None,
    failure_reason: str | None = None,
) -> CallbackResult:
    outcome = _outcome(outcome)
    intents = current_domain.repository_for(PaymentIntent)
    located = intents.by_provider_reference(provider_reference)
    intent_id = str(located.id)

    with order_locks.hold(located.order_id), intent_locks.hold(intent_id):
        intent = intents.load(intent_id)
        if intent.is_terminal:
            logger.info(
                "payment_callback_replayed",
                payment_intent_id=intent_id,
                provider_reference=provider_reference,
                outcome=outcome.value,
                recorded_status=intent.status,
            )
            return CallbackResult.of(intent, replayed=True)

        if outcome == CallbackOutcome.APPROVED:
            status, reason = _verify(intent, provider_reference, payer_reference)
        elif outcome == CallbackOutcome.CANCELLED:
            status, reason = IntentStatus.CANCELLED, None
        else:
            status, reason = IntentStatus.FAILED, failure_reason or "Provider reported failure"

        result = current_domain.process(
            ResolvePaymentIntent(
                payment_intent_id=intent_id,
                status=status.value,
                payer_reference=payer_reference,
                failure_reason=reason,
            ),
            asynchronous=False,
        )

    logger.info(
        "payment_callback_applied",
        payment_intent_id=intent_id,
        order_number=result.order_number,
        provider_reference=provider_reference,
        outcome=outcome.value,
        status=result.status,
    )
    return result
