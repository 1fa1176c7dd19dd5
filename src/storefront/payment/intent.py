"""PaymentIntent aggregate: one attempt to collect an order's total.

CREATED is the only open status. The first terminal outcome recorded
(VERIFIED, FAILED, CANCELLED or EXPIRED) is authoritative; later callbacks
for the same intent are answered from the stored state.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront
from storefront.errors import InvalidTransition
from storefront.payment.events import PaymentIntentCreated, PaymentIntentOpened, PaymentIntentResolved


class IntentStatus(Enum):
    CREATED = "CREATED"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class CallbackOutcome(Enum):
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


_TERMINAL_STATUSES = {IntentStatus.VERIFIED, IntentStatus.FAILED, IntentStatus.CANCELLED, IntentStatus.EXPIRED}


@storefront.aggregate
class PaymentIntent:
    order_id = Identifier(required=True)
    order_number = String(max_length=40)
    provider = String(max_length=30, required=True)
    provider_reference = String(max_length=255)
    approval_url = String(max_length=2000)
    amount = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    status = String(choices=IntentStatus, default=IntentStatus.CREATED.value)
    payer_reference = String(max_length=255)
    failure_reason = String(max_length=500)
    created_at = DateTime()
    resolved_at = DateTime()

    @classmethod
    def create(cls, order, provider_name):
        intent = cls(
            order_id=order.id,
            order_number=order.order_number,
            provider=provider_name,
            amount=order.pricing.total,
            currency=order.pricing.currency,
            status=IntentStatus.CREATED.value,
            created_at=datetime.now(UTC),
        )
        intent.raise_(
            PaymentIntentCreated(
                payment_intent_id=str(intent.id),
                order_id=str(order.id),
                order_number=order.order_number,
                amount=intent.amount,
                currency=intent.currency,
                provider=provider_name,
            )
        )
        return intent

    @property
    def is_terminal(self) -> bool:
        return IntentStatus(self.status) in _TERMINAL_STATUSES

    def _assert_open(self, target: IntentStatus) -> None:
        if self.is_terminal:
            raise InvalidTransition(self.status, target.value)

    def attach_provider_reference(self, provider_reference, approval_url):
        self._assert_open(IntentStatus.CREATED)
        self.provider_reference = provider_reference
        self.approval_url = approval_url
        self.raise_(
            PaymentIntentOpened(
                payment_intent_id=str(self.id),
                order_id=str(self.order_id),
                provider_reference=provider_reference,
                approval_url=approval_url,
            )
        )

    def _resolve(self, status: IntentStatus, failure_reason=None, payer_reference=None):
        self._assert_open(status)
        now = datetime.now(UTC)
        self.status = status.value
        self.failure_reason = failure_reason
        if payer_reference:
            self.payer_reference = payer_reference
        self.resolved_at = now
        self.raise_(
            PaymentIntentResolved(
                payment_intent_id=str(self.id),
                order_id=str(self.order_id),
                provider_reference=self.provider_reference,
                status=status.value,
                failure_reason=failure_reason,
                resolved_at=now,
            )
        )

    def mark_verified(self, payer_reference=None):
        self._resolve(IntentStatus.VERIFIED, payer_reference=payer_reference)

    def mark_failed(self, reason, payer_reference=None):
        self._resolve(IntentStatus.FAILED, failure_reason=reason, payer_reference=payer_reference)

    def mark_cancelled(self, payer_reference=None):
        self._resolve(IntentStatus.CANCELLED, failure_reason="Cancelled by payer", payer_reference=payer_reference)

    def mark_expired(self):
        self._resolve(IntentStatus.EXPIRED, failure_reason="Never approved")


@dataclass(frozen=True)
class IntentView:
    payment_intent_id: str
    order_id: str
    order_number: str
    provider_reference: str | None
    approval_url: str | None
    amount: int
    currency: str
    status: str
    reused: bool = False

    @classmethod
    def of(cls, intent: PaymentIntent, reused: bool = False) -> "IntentView":
        return cls(
            payment_intent_id=str(intent.id),
            order_id=str(intent.order_id),
            order_number=intent.order_number,
            provider_reference=intent.provider_reference,
            approval_url=intent.approval_url,
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
            reused=reused,
        )


@dataclass(frozen=True)
class CallbackResult:
    payment_intent_id: str
    order_id: str
    order_number: str
    provider_reference: str
    status: str
    failure_reason: str | None = None
    replayed: bool = False

    @classmethod
    def of(cls, intent: PaymentIntent, replayed: bool = False) -> "CallbackResult":
        return cls(
            payment_intent_id=str(intent.id),
            order_id=str(intent.order_id),
            order_number=intent.order_number,
            provider_reference=intent.provider_reference,
            status=intent.status,
            failure_reason=intent.failure_reason,
            replayed=replayed,
        )
