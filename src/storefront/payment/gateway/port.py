"""Payment provider port (abstract interface).

Every adapter must behave the same way on failure:
- ``ProviderUnreachable`` when the provider cannot be reached or gives no
  definite answer (timeouts, transport errors, 5xx). The caller cannot know
  whether money moved.
- ``ProviderRejected`` when the provider definitively refuses to create the
  payment. Nobody was charged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderIntent:
    provider_reference: str
    approval_url: str


@dataclass(frozen=True)
class Verification:
    """Outcome of asking the provider whether an approved payment really settled."""

    approved: bool
    provider_status: str | None = None
    failure_reason: str | None = None


class PaymentProvider(ABC):
    name = "abstract"

    @abstractmethod
    def create_intent(self, amount: int, currency: str, reference: str) -> ProviderIntent:
        """Open a payment of ``amount`` minor units. ``reference`` is our intent id."""
        ...

    @abstractmethod
    def verify_intent(self, provider_reference: str, payer_reference: str | None) -> Verification:
        """Confirm (capture) a payment the payer approved."""
        ...
