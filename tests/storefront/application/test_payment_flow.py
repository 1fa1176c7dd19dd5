"""Application tests for the payment coordinator: intents, callbacks and retries."""

import threading

import pytest
from protean import current_domain
from storefront.domain import storefront
from storefront.errors import (
    AlreadyPaid,
    AmountMismatch,
    InvalidTransition,
    PaymentIntentNotFound,
    ProviderRejected,
    ProviderUnreachable,
)
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.payment.callback import handle_provider_callback
from storefront.payment.initiation import create_payment_intent
from storefront.payment.intent import IntentStatus, PaymentIntent


@pytest.fixture()
def order_id(catalog, checkout):
    """A PLACED order for one bag of cat litter, total 275.99 INR."""
    return checkout("cust-001", {"cat-litter": 1})


def _create_intent(order_id, amount=27599, currency="INR"):
    return create_payment_intent(order_id, amount=amount, currency=currency)


def _callback(provider_reference, outcome="APPROVED", payer_reference="payer-1", failure_reason=None):
    return handle_provider_callback(
        provider_reference,
        outcome,
        payer_reference=payer_reference,
        failure_reason=failure_reason,
    )


def _order(order_id):
    return current_domain.repository_for(Order).load(order_id)


def _intent(payment_intent_id):
    return current_domain.repository_for(PaymentIntent).load(payment_intent_id)


class TestCreatePaymentIntent:
    def test_intent_opens_with_provider_reference(self, order_id, provider):
        view = _create_intent(order_id)

        assert view.status == IntentStatus.CREATED.value
        assert view.provider_reference.startswith("FAKE-")
        assert "paymentId=" in view.approval_url
        assert view.amount == 27599
        assert view.reused is False
        assert provider.calls_to("create_intent")[0]["amount"] == 27599
        assert str(_order(order_id).payment_intent_id) == view.payment_intent_id

    def test_amount_must_match_order_total(self, order_id, provider):
        with pytest.raises(AmountMismatch) as exc_info:
            _create_intent(order_id, amount=27500)

        assert exc_info.value.details["expected"] == 27599
        assert provider.calls == []
        assert current_domain.repository_for(PaymentIntent).for_order(order_id) == []

    def test_currency_must_match(self, order_id, provider):
        with pytest.raises(AmountMismatch):
            _create_intent(order_id, currency="USD")

    def test_open_intent_is_reused(self, order_id, provider):
        first = _create_intent(order_id)
        second = _create_intent(order_id)

        assert second.payment_intent_id == first.payment_intent_id
        assert second.provider_reference == first.provider_reference
        assert second.reused is True
        assert len(provider.calls_to("create_intent")) == 1

    def test_cancelled_order_cannot_be_paid(self, order_id, provider):
        current_domain.process(CancelOrder(order_id=order_id, actor_id="cust-001"), asynchronous=False)

        with pytest.raises(InvalidTransition):
            _create_intent(order_id)

    def test_transient_failure_is_retried(self, order_id, provider):
        provider.configure(unreachable_for=1)

        view = _create_intent(order_id)

        assert view.provider_reference is not None
        assert len(provider.calls_to("create_intent")) == 2

    def test_unreachable_provider_leaves_intent_created(self, order_id, provider):
        provider.configure(unreachable_for=10)

        with pytest.raises(ProviderUnreachable):
            _create_intent(order_id)

        intents = current_domain.repository_for(PaymentIntent).for_order(order_id)
        assert len(intents) == 1
        assert intents[0].status == IntentStatus.CREATED.value
        assert intents[0].provider_reference is None
        assert len(provider.calls_to("create_intent")) == 3

    def test_retry_after_outage_reuses_the_pending_intent(self, order_id, provider):
        provider.configure(unreachable_for=3)
        with pytest.raises(ProviderUnreachable):
            _create_intent(order_id)
        pending = current_domain.repository_for(PaymentIntent).for_order(order_id)[0]

        view = _create_intent(order_id)

        assert view.payment_intent_id == str(pending.id)
        assert view.provider_reference is not None
        assert len(current_domain.repository_for(PaymentIntent).for_order(order_id)) == 1

    def test_rejection_fails_the_intent(self, order_id, provider):
        provider.configure(reject_creation=True, failure_reason="PAYEE_ACCOUNT_RESTRICTED")

        with pytest.raises(ProviderRejected):
            _create_intent(order_id)

        intents = current_domain.repository_for(PaymentIntent).for_order(order_id)
        assert intents[0].status == IntentStatus.FAILED.value
        assert intents[0].failure_reason == "PAYEE_ACCOUNT_RESTRICTED"
        assert len(provider.calls_to("create_intent")) == 1

    def test_new_intent_after_rejection(self, order_id, provider):
        provider.configure(reject_creation=True)
        with pytest.raises(ProviderRejected):
            _create_intent(order_id)
        provider.configure()

        view = _create_intent(order_id)

        assert view.reused is False
        assert len(current_domain.repository_for(PaymentIntent).for_order(order_id)) == 2


class TestApprovedCallback:
    def test_verified_payment_marks_order_paid_and_confirmed(self, order_id, provider):
        view = _create_intent(order_id)

        result = _callback(view.provider_reference)

        assert result.status == IntentStatus.VERIFIED.value
        assert result.replayed is False
        order = _order(order_id)
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.CONFIRMED.value
        assert _intent(view.payment_intent_id).payer_reference == "payer-1"

    def test_duplicate_callback_is_replayed(self, order_id, provider):
        view = _create_intent(order_id)
        _callback(view.provider_reference)

        again = _callback(view.provider_reference)

        assert again.replayed is True
        assert again.status == IntentStatus.VERIFIED.value
        assert len(provider.calls_to("verify_intent")) == 1

    def test_paid_order_rejects_another_intent(self, order_id, provider):
        view = _create_intent(order_id)
        _callback(view.provider_reference)

        with pytest.raises(AlreadyPaid):
            _create_intent(order_id)

    def test_declined_verification_leaves_order_pending(self, order_id, provider):
        view = _create_intent(order_id)
        provider.configure(approve=False, failure_reason="INSTRUMENT_DECLINED")

        result = _callback(view.provider_reference)

        assert result.status == IntentStatus.FAILED.value
        assert result.failure_reason == "INSTRUMENT_DECLINED"
        order = _order(order_id)
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.status == OrderStatus.PLACED.value

    def test_customer_can_retry_after_decline(self, order_id, provider):
        view = _create_intent(order_id)
        provider.configure(approve=False)
        _callback(view.provider_reference)
        provider.configure()

        retry = _create_intent(order_id)
        result = _callback(retry.provider_reference)

        assert retry.payment_intent_id != view.payment_intent_id
        assert result.status == IntentStatus.VERIFIED.value
        assert _order(order_id).is_paid

    def test_verification_outage_keeps_intent_open(self, order_id, provider):
        view = _create_intent(order_id)
        provider.configure(unreachable_for=10)

        with pytest.raises(ProviderUnreachable):
            _callback(view.provider_reference)

        assert _intent(view.payment_intent_id).status == IntentStatus.CREATED.value
        assert not _order(order_id).is_paid

        provider.configure()
        assert _callback(view.provider_reference).status == IntentStatus.VERIFIED.value

    def test_payment_on_a_cancelled_order_is_still_recorded(self, order_id, provider):
        view = _create_intent(order_id)
        current_domain.process(CancelOrder(order_id=order_id, actor_id="cust-001"), asynchronous=False)

        result = _callback(view.provider_reference)

        assert result.status == IntentStatus.VERIFIED.value
        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.PAID.value


class TestOtherOutcomes:
    def test_payer_cancelled(self, order_id, provider):
        view = _create_intent(order_id)

        result = _callback(view.provider_reference, outcome="CANCELLED")

        assert result.status == IntentStatus.CANCELLED.value
        assert provider.calls_to("verify_intent") == []
        assert not _order(order_id).is_paid

    def test_provider_reported_failure(self, order_id, provider):
        view = _create_intent(order_id)

        result = _callback(view.provider_reference, outcome="FAILED", failure_reason="RISK_DECLINED")

        assert result.status == IntentStatus.FAILED.value
        assert result.failure_reason == "RISK_DECLINED"

    def test_late_approval_after_cancel_is_ignored(self, order_id, provider):
        view = _create_intent(order_id)
        _callback(view.provider_reference, outcome="CANCELLED")

        late = _callback(view.provider_reference, outcome="APPROVED")

        assert late.replayed is True
        assert late.status == IntentStatus.CANCELLED.value
        assert provider.calls_to("verify_intent") == []
        assert not _order(order_id).is_paid

    def test_unknown_reference(self, provider):
        with pytest.raises(PaymentIntentNotFound):
            _callback("FAKE-DOES-NOT-EXIST")


@pytest.mark.slow
class TestConcurrentCallbacks:
    def _race(self, provider_reference, *outcomes):
        barrier = threading.Barrier(len(outcomes))
        results = []

        def worker(outcome):
            with storefront.domain_context():
                barrier.wait()
                results.append(_callback(provider_reference, outcome=outcome))

        threads = [threading.Thread(target=worker, args=(outcome,)) for outcome in outcomes]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return results

    def test_duplicate_approvals_verify_once(self, order_id, provider):
        view = _create_intent(order_id)

        results = self._race(view.provider_reference, "APPROVED", "APPROVED")

        assert sorted(r.replayed for r in results) == [False, True]
        assert {r.status for r in results} == {IntentStatus.VERIFIED.value}
        assert len(provider.calls_to("verify_intent")) == 1
        assert _order(order_id).payment_status == PaymentStatus.PAID.value

    def test_approval_racing_cancellation_has_one_winner(self, order_id, provider):
        view = _create_intent(order_id)

        results = self._race(view.provider_reference, "APPROVED", "CANCELLED")

        winner = next(r for r in results if not r.replayed)
        loser = next(r for r in results if r.replayed)
        assert loser.status == winner.status
        assert _intent(view.payment_intent_id).status == winner.status
        assert _order(order_id).is_paid == (winner.status == IntentStatus.VERIFIED.value)
