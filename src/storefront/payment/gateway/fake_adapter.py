"""Configurable fake payment provider for development and testing.

No external calls are made. Approval URLs point at the storefront's own
success page so a developer can click through the flow by hand. Behaviour is
switched at runtime:

- ``configure(approve=False)`` makes verification fail (declined payment)
- ``configure(reject_creation=True)`` makes intent creation fail
- ``configure(unreachable_for=n)`` makes the next ``n`` calls time out
"""

from uuid import uuid4

from storefront.errors import ProviderRejected, ProviderUnreachable
from storefront.payment.gateway.port import PaymentProvider, ProviderIntent, Verification


class FakeProvider(PaymentProvider):
    name = "fake"

    def __init__(self, return_url: str = "http://localhost:3000/payment/success") -> None:
        self.return_url = return_url
        self.approve: bool = True
        self.reject_creation: bool = False
        self.unreachable_for: int = 0
        self.failure_reason: str = "Payment declined"
        self.calls: list[dict] = []

    def configure(
        self,
        approve: bool = True,
        reject_creation: bool = False,
        unreachable_for: int = 0,
        failure_reason: str = "Payment declined",
    ) -> None:
        self.approve = approve
        self.reject_creation = reject_creation
        self.unreachable_for = unreachable_for
        self.failure_reason = failure_reason

    def _maybe_time_out(self, method: str) -> None:
        if self.unreachable_for > 0:
            self.unreachable_for -= 1
            raise ProviderUnreachable(f"{method} timed out", provider=self.name)

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def create_intent(self, amount: int, currency: str, reference: str) -> ProviderIntent:
        self.calls.append({"method": "create_intent", "amount": amount, "currency": currency, "reference": reference})
        self._maybe_time_out("create_intent")

        if self.reject_creation:
            raise ProviderRejected(self.failure_reason, provider=self.name)

        provider_reference = f"FAKE-{uuid4().hex[:16].upper()}"
        return ProviderIntent(
            provider_reference=provider_reference,
            approval_url=f"{self.return_url}?paymentId={provider_reference}&PayerID=fake-payer",
        )

    def verify_intent(self, provider_reference: str, payer_reference: str | None) -> Verification:
        self.calls.append(
            {"method": "verify_intent", "provider_reference": provider_reference, "payer_reference": payer_reference}
        )
        self._maybe_time_out("verify_intent")

        if self.approve:
            return Verification(approved=True, provider_status="COMPLETED")
        return Verification(approved=False, provider_status="DECLINED", failure_reason=self.failure_reason)
