"""
Razorpay payment adapter.

Talks to the Razorpay Orders/Payments REST API over httpx and verifies
checkout and webhook signatures. Amounts cross this boundary in rupees and
are converted to paise for the API.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


class RazorpayError(Exception):
    """Base exception for Razorpay adapter errors."""

    pass


class RazorpayAPIError(RazorpayError):
    """Raised when the Razorpay API returns an error or is unreachable."""

    pass


class RazorpayAuthError(RazorpayError):
    """Raised when API keys are missing."""

    pass


class RazorpaySignatureError(RazorpayError):
    """Raised when a signature cannot be checked (no secret configured)."""

    pass


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


@dataclass
class RazorpayOrder:
    """Razorpay order information."""

    id: str
    amount: int  # paise
    currency: str
    receipt: str | None
    status: str
    notes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RazorpayOrder":
        notes = data.get("notes") or {}
        return cls(
            id=data.get("id", ""),
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", "INR"),
            receipt=data.get("receipt"),
            status=data.get("status", ""),
            # Razorpay returns [] for empty notes
            notes=notes if isinstance(notes, dict) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "currency": self.currency,
            "receipt": self.receipt,
            "status": self.status,
            "notes": self.notes,
        }


@dataclass
class RazorpayPayment:
    """Razorpay payment information."""

    id: str
    order_id: str | None
    amount: int  # paise
    currency: str
    status: str  # created, authorized, captured, refunded, failed
    method: str | None = None
    email: str | None = None
    error_code: str | None = None
    error_description: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RazorpayPayment":
        return cls(
            id=data.get("id", ""),
            order_id=data.get("order_id"),
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", "INR"),
            status=data.get("status", ""),
            method=data.get("method"),
            email=data.get("email"),
            error_code=data.get("error_code"),
            error_description=data.get("error_description"),
        )


@dataclass
class RazorpayWebhookEvent:
    """Razorpay webhook event data."""

    event: str  # payment.captured, payment.failed, order.paid ...
    order_id: str | None
    payment_id: str | None
    amount: int | None
    error_code: str | None
    error_description: str | None
    data: dict[str, Any]

    @classmethod
    def from_webhook_payload(cls, payload: dict[str, Any]) -> "RazorpayWebhookEvent":
        body = payload.get("payload", {}) or {}
        payment = (body.get("payment") or {}).get("entity") or {}
        order = (body.get("order") or {}).get("entity") or {}
        return cls(
            event=payload.get("event", ""),
            order_id=payment.get("order_id") or order.get("id"),
            payment_id=payment.get("id"),
            amount=payment.get("amount") or order.get("amount"),
            error_code=payment.get("error_code"),
            error_description=payment.get("error_description"),
            data=payload,
        )


class RazorpayAdapter:
    """
    Razorpay API adapter.

    Provides order creation, payment lookup and signature verification for
    Razorpay Checkout and Razorpay webhooks.
    """

    API_BASE_URL = "https://api.razorpay.com/v1"

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Razorpay adapter.

        Args:
            key_id: Razorpay key id (defaults to settings)
            key_secret: Razorpay key secret (defaults to settings)
            webhook_secret: Webhook signing secret (defaults to settings)
            transport: Optional httpx transport, used by tests
        """
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.webhook_secret = webhook_secret or settings.razorpay_webhook_secret
        self._transport = transport

        if not (self.key_id and self.key_secret):
            logger.warning(
                "Razorpay keys not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
            )

    def _get_auth(self) -> tuple[str, str]:
        if not (self.key_id and self.key_secret):
            raise RazorpayAuthError(
                "Razorpay keys not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
            )
        return self.key_id, self.key_secret

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated request to the Razorpay API.

        Raises:
            RazorpayAuthError: If keys are not configured
            RazorpayAPIError: If the request fails
        """
        auth = self._get_auth()
        url = f"{self.API_BASE_URL}/{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                logger.info("Razorpay %s %s", method, endpoint)
                response = await client.request(method, url, auth=auth, json=data)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            error_detail = str(e)
            try:
                error = e.response.json().get("error", {})
                error_detail = error.get("description") or error_detail
            except ValueError:
                pass
            logger.error("Razorpay API error: %s", error_detail)
            raise RazorpayAPIError(f"API request failed: {error_detail}") from e
        except httpx.RequestError as e:
            logger.error("Razorpay request error: %s", e)
            raise RazorpayAPIError(f"Request failed: {e}") from e

    async def create_order(
        self,
        amount: float,
        currency: str = "INR",
        receipt: str | None = None,
        notes: dict[str, Any] | None = None,
    ) -> RazorpayOrder:
        """
        Create a Razorpay order.

        Args:
            amount: Amount in rupees; sent to Razorpay in paise
            currency: ISO currency code
            receipt: Merchant receipt reference (max 40 chars)
            notes: Key/value notes stored on the order
        """
        body: dict[str, Any] = {
            "amount": to_paise(amount),
            "currency": currency,
            "notes": {k: str(v) for k, v in (notes or {}).items()},
        }
        if receipt:
            body["receipt"] = receipt[:40]

        response = await self._make_request("POST", "orders", body)
        order = RazorpayOrder.from_api_response(response)
        logger.info("Created Razorpay order %s for %s %s", order.id, amount, currency)
        return order

    async def fetch_payment(self, payment_id: str) -> RazorpayPayment:
        response = await self._make_request("GET", f"payments/{payment_id}")
        return RazorpayPayment.from_api_response(response)

    def _sign(self, secret: str, message: bytes) -> str:
        return hmac.new(
            key=secret.encode("utf-8"),
            msg=message,
            digestmod=hashlib.sha256,
        ).hexdigest()

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Verify the signature Razorpay Checkout hands back to the browser.

        The signature is HMAC-SHA256 of ``"{order_id}|{payment_id}"`` keyed
        with the API key secret.
        """
        if not self.key_secret:
            raise RazorpaySignatureError("Razorpay key secret not configured.")
        expected = self._sign(self.key_secret, f"{order_id}|{payment_id}".encode("utf-8"))
        is_valid = hmac.compare_digest(expected, signature or "")
        if not is_valid:
            logger.warning("Payment signature verification failed for order %s", order_id)
        return is_valid

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """
        Verify a webhook signature using HMAC SHA256.

        Args:
            payload: Raw request body, exactly as received
            signature: Value of the X-Razorpay-Signature header
        """
        if not self.webhook_secret:
            raise RazorpaySignatureError(
                "Webhook secret not configured. Set RAZORPAY_WEBHOOK_SECRET."
            )
        expected = self._sign(self.webhook_secret, payload)
        is_valid = hmac.compare_digest(expected, signature or "")
        if is_valid:
            logger.info("Webhook signature verified successfully")
        else:
            logger.warning("Webhook signature verification failed")
        return is_valid

    def parse_webhook_event(self, payload: dict[str, Any]) -> RazorpayWebhookEvent:
        event = RazorpayWebhookEvent.from_webhook_payload(payload)
        logger.info("Parsed Razorpay webhook event: %s", event.event)
        return event


def create_razorpay_adapter(
    key_id: str | None = None,
    key_secret: str | None = None,
    webhook_secret: str | None = None,
) -> RazorpayAdapter:
    """Create a Razorpay adapter instance (defaults to settings)."""
    return RazorpayAdapter(
        key_id=key_id,
        key_secret=key_secret,
        webhook_secret=webhook_secret,
    )


razorpay_adapter = create_razorpay_adapter()
