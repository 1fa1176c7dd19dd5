import pytest
from storefront.errors import InvalidTransition
from storefront.order.order import Order, generate_order_number
from storefront.payment.events import PaymentIntentCreated, PaymentIntentResolved
from storefront.payment.intent import CallbackResult, IntentStatus, IntentView, PaymentIntent
from storefront.pricing.engine import PriceBreakdown

ADDRESS = {"recipient_name": "Asha Rao", "street": "12 MG Road", "city": "Bengaluru", "postal_code": "560001"}


def _make_intent():
    order = Order.place(
        customer_id="cust-001",
        order_number=generate_order_number(),
        lines=[{"product_id": "chew-toy", "vendor_id": "vendor-toys", "quantity": 2, "unit_price": 5000}],
        shipping_address=ADDRESS,
        breakdown=PriceBreakdown(subtotal=10000, shipping_cost=5999, tax=800, total=16799, currency="INR"),
        payment_method="PAYPAL",
        shipping_option="STANDARD",
    )
    return PaymentIntent.create(order, "fake")


class TestCreate:
    def test_copies_total_from_order(self):
        intent = _make_intent()

        assert intent.status == IntentStatus.CREATED.value
        assert intent.amount == 16799
        assert intent.currency == "INR"
        assert intent.provider_reference is None
        assert not intent.is_terminal
        assert isinstance(intent._events[-1], PaymentIntentCreated)

    def test_view_reflects_intent(self):
        intent = _make_intent()
        intent.attach_provider_reference("FAKE-1", "https://pay.example/approve")

        view = IntentView.of(intent, reused=True)

        assert view.provider_reference == "FAKE-1"
        assert view.reused is True
        assert view.amount == 16799


class TestResolution:
    def test_verified_is_terminal(self):
        intent = _make_intent()
        intent.attach_provider_reference("FAKE-1", "https://pay.example/approve")

        intent.mark_verified(payer_reference="payer-9")

        assert intent.status == IntentStatus.VERIFIED.value
        assert intent.payer_reference == "payer-9"
        assert intent.resolved_at is not None
        assert intent.is_terminal
        assert isinstance(intent._events[-1], PaymentIntentResolved)

    def test_failed_keeps_reason(self):
        intent = _make_intent()

        intent.mark_failed("INSTRUMENT_DECLINED")

        assert intent.failure_reason == "INSTRUMENT_DECLINED"
        assert CallbackResult.of(intent).failure_reason == "INSTRUMENT_DECLINED"

    @pytest.mark.parametrize("resolve", ["mark_verified", "mark_cancelled", "mark_expired"])
    def test_first_terminal_outcome_wins(self, resolve):
        intent = _make_intent()
        intent.mark_failed("declined")

        with pytest.raises(InvalidTransition):
            getattr(intent, resolve)()

        assert intent.status == IntentStatus.FAILED.value

    def test_reference_cannot_be_attached_after_expiry(self):
        intent = _make_intent()
        intent.mark_expired()

        with pytest.raises(InvalidTransition):
            intent.attach_provider_reference("FAKE-2", "https://pay.example/approve")
