"""Payment intent expiry.

Triggered periodically (``sweeper.py`` or the maintenance endpoint). Intents
still CREATED after the threshold are marked EXPIRED, one command per intent
under that intent's locks. Their orders are left alone so the customer can
start a fresh payment.
"""

from datetime import UTC, datetime, timedelta

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.payment.intent import IntentStatus, PaymentIntent
from storefront.utils.locks import intent_locks, order_locks


@storefront.command(part_of="PaymentIntent")
class ExpirePaymentIntent:
    payment_intent_id = Identifier(required=True)


@storefront.command_handler(part_of=PaymentIntent)
class PaymentIntentExpiryHandler:
    @handle(ExpirePaymentIntent)
    def expire_payment_intent(self, command):
        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.load(command.payment_intent_id)
        # A callback may have resolved it since the scan
        if intent.status != IntentStatus.CREATED.value:
            return False
        intent.mark_expired()
        intents.add(intent)
        return True


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def expire_stale_payment_intents(older_than_minutes: int | None = None, as_of: datetime | None = None) -> int:
    """Expire every intent left CREATED for longer than the threshold. Returns the count."""
    as_of = as_of or datetime.now(UTC)
    if older_than_minutes is None:
        older_than_minutes = get_settings().payment_intent_expiry_minutes
    cutoff = _as_naive_utc(as_of - timedelta(minutes=older_than_minutes))

    stale = [
        intent
        for intent in current_domain.repository_for(PaymentIntent).open_intents()
        if intent.created_at and _as_naive_utc(intent.created_at) <= cutoff
    ]
    if not stale:
        logger.info("no_stale_payment_intents", cutoff=cutoff.isoformat())
        return 0

    expired = 0
    for candidate in stale:
        with order_locks.hold(candidate.order_id), intent_locks.hold(candidate.id):
            if not current_domain.process(
                ExpirePaymentIntent(payment_intent_id=str(candidate.id)),
                asynchronous=False,
            ):
                continue
        expired += 1
        logger.info(
            "payment_intent_expired",
            payment_intent_id=str(candidate.id),
            order_number=candidate.order_number,
            provider_reference=candidate.provider_reference,
        )

    logger.info("payment_intent_sweep_complete", expired_count=expired, cutoff=cutoff.isoformat())
    return expired
