"""PayPal REST adapter (Orders v2).

``create_intent`` opens a PayPal order with intent CAPTURE and returns the
payer approval link; ``verify_intent`` captures the approved order. Every
request carries an explicit timeout and a ``PayPal-Request-Id`` derived from
our own identifiers, so retries at the coordinator boundary cannot double
charge.
"""

import time

import httpx
import structlog

from storefront.config import StorefrontSettings, get_settings
from storefront.errors import ProviderRejected, ProviderUnreachable
from storefront.payment.gateway.port import PaymentProvider, ProviderIntent, Verification
from storefront.shared.money import format_minor

logger = structlog.get_logger(__name__)

# Refresh the OAuth token a little before PayPal expires it
_TOKEN_EXPIRY_MARGIN_SECONDS = 60


class PayPalProvider(PaymentProvider):
    name = "paypal"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str,
        return_url: str,
        cancel_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.return_url = return_url
        self.cancel_url = cancel_url
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls, settings: StorefrontSettings | None = None, **kwargs) -> "PayPalProvider":
        settings = settings or get_settings()
        return cls(
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            base_url=settings.paypal_base_url,
            return_url=settings.paypal_return_url,
            cancel_url=settings.paypal_cancel_url,
            timeout=settings.provider_timeout_seconds,
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------
    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderUnreachable(f"PayPal {method} {path} timed out", provider=self.name) from exc
        except httpx.TransportError as exc:
            raise ProviderUnreachable(f"PayPal {method} {path} failed: {exc}", provider=self.name) from exc

        if response.is_server_error:
            logger.warning("paypal_server_error", path=path, status_code=response.status_code)
            raise ProviderUnreachable(
                f"PayPal {method} {path} returned {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )
        return response

    def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        response = self._send(
            "POST",
            "/v1/oauth2/token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
        )
        if response.is_client_error:
            # Bad credentials: retrying cannot help until configuration changes
            logger.error("paypal_authentication_failed", status_code=response.status_code)
            raise ProviderRejected(
                f"PayPal authentication failed with {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                configuration_error=True,
            )

        payload = response.json()
        self._token = payload["access_token"]
        self._token_expires_at = (
            time.monotonic() + int(payload.get("expires_in", 0)) - _TOKEN_EXPIRY_MARGIN_SECONDS
        )
        return self._token

    def _headers(self, request_id: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
            "PayPal-Request-Id": request_id,
        }

    @staticmethod
    def _error_reason(response: httpx.Response) -> tuple[str, str | None]:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}", None
        details = payload.get("details") or [{}]
        issue = details[0].get("issue")
        return payload.get("message") or payload.get("name") or f"HTTP {response.status_code}", issue

    # -------------------------------------------------------------------
    # Port
    # -------------------------------------------------------------------
    def create_intent(self, amount: int, currency: str, reference: str) -> ProviderIntent:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference,
                    "amount": {"currency_code": currency, "value": format_minor(amount)},
                }
            ],
            "application_context": {
                "return_url": self.return_url,
                "cancel_url": self.cancel_url,
                "user_action": "PAY_NOW",
            },
        }
        response = self._send("POST", "/v2/checkout/orders", json=body, headers=self._headers(f"create-{reference}"))
        if response.is_client_error:
            reason, issue = self._error_reason(response)
            raise ProviderRejected(reason, provider=self.name, status_code=response.status_code, issue=issue)

        payload = response.json()
        approval_url = next(
            (link["href"] for link in payload.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        if approval_url is None:
            raise ProviderRejected("PayPal returned no approval link", provider=self.name)

        logger.info("paypal_order_created", provider_reference=payload["id"], reference=reference)
        return ProviderIntent(provider_reference=payload["id"], approval_url=approval_url)

    def verify_intent(self, provider_reference: str, payer_reference: str | None) -> Verification:
        response = self._send(
            "POST",
            f"/v2/checkout/orders/{provider_reference}/capture",
            json={},
            headers=self._headers(f"capture-{provider_reference}"),
        )

        if response.is_client_error:
            reason, issue = self._error_reason(response)
            if issue == "ORDER_ALREADY_CAPTURED":
                return Verification(approved=True, provider_status="COMPLETED")
            logger.info(
                "paypal_capture_rejected",
                provider_reference=provider_reference,
                status_code=response.status_code,
                issue=issue,
            )
            return Verification(approved=False, provider_status=issue or str(response.status_code), failure_reason=reason)

        payload = response.json()
        status = payload.get("status")
        if status == "COMPLETED":
            return Verification(approved=True, provider_status=status)
        return Verification(approved=False, provider_status=status, failure_reason=f"Capture status {status}")
