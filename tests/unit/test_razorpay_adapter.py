"""
Unit tests for the Razorpay adapter.

HTTP calls go through httpx.MockTransport so no request leaves the process.
"""

import base64
import hashlib
import hmac
import json

import httpx
import pytest

from adapters.payments import (
    RazorpayAdapter,
    RazorpayAPIError,
    RazorpayAuthError,
    RazorpaySignatureError,
    to_paise,
)

KEY_ID = "rzp_test_unit"
KEY_SECRET = "unit_key_secret"
WEBHOOK_SECRET = "unit_webhook_secret"


def _sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def _adapter(handler=None) -> RazorpayAdapter:
    transport = httpx.MockTransport(handler) if handler else None
    return RazorpayAdapter(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        transport=transport,
    )


def test_to_paise_rounds_to_nearest():
    assert to_paise(2999) == 299900
    assert to_paise(3538.82) == 353882
    assert to_paise(0.1 + 0.2) == 30


class TestCreateOrder:
    async def test_sends_paise_with_basic_auth(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "id": "order_ABC123",
                    "amount": captured["body"]["amount"],
                    "currency": "INR",
                    "receipt": captured["body"].get("receipt"),
                    "status": "created",
                    "notes": captured["body"]["notes"],
                },
            )

        order = await _adapter(handler).create_order(
            amount=2999.0,
            receipt="sub_" + "x" * 60,
            notes={"subscription_id": "sub-1", "months": 1},
        )

        assert captured["url"] == "https://api.razorpay.com/v1/orders"
        expected_auth = base64.b64encode(f"{KEY_ID}:{KEY_SECRET}".encode()).decode()
        assert captured["auth"] == f"Basic {expected_auth}"
        assert captured["body"]["amount"] == 299900
        assert captured["body"]["currency"] == "INR"
        assert len(captured["body"]["receipt"]) == 40
        # Razorpay only accepts string note values
        assert captured["body"]["notes"] == {"subscription_id": "sub-1", "months": "1"}

        assert order.id == "order_ABC123"
        assert order.amount == 299900
        assert order.status == "created"

    async def test_empty_notes_list_becomes_dict(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"id": "order_1", "amount": 100, "currency": "INR", "status": "created", "notes": []},
            )

        order = await _adapter(handler).create_order(amount=1.0)
        assert order.notes == {}

    async def test_api_error_uses_razorpay_description(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Order amount less than minimum amount allowed"}},
            )

        with pytest.raises(RazorpayAPIError) as exc_info:
            await _adapter(handler).create_order(amount=0.5)
        assert "Order amount less than minimum amount allowed" in str(exc_info.value)

    async def test_network_error_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RazorpayAPIError):
            await _adapter(handler).create_order(amount=10.0)

    async def test_missing_keys_raise_auth_error(self):
        adapter = _adapter()
        adapter.key_id = ""
        with pytest.raises(RazorpayAuthError):
            await adapter.create_order(amount=10.0)


async def test_fetch_payment():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payments/pay_XYZ"
        return httpx.Response(
            200,
            json={
                "id": "pay_XYZ",
                "order_id": "order_ABC",
                "amount": 599900,
                "currency": "INR",
                "status": "captured",
                "method": "upi",
            },
        )

    payment = await _adapter(handler).fetch_payment("pay_XYZ")
    assert payment.order_id == "order_ABC"
    assert payment.status == "captured"
    assert payment.method == "upi"


class TestSignatures:
    def test_valid_checkout_signature(self):
        signature = _sign(KEY_SECRET, b"order_1|pay_1")
        assert _adapter().verify_payment_signature("order_1", "pay_1", signature)

    def test_checkout_signature_for_other_payment_rejected(self):
        signature = _sign(KEY_SECRET, b"order_1|pay_1")
        assert not _adapter().verify_payment_signature("order_1", "pay_2", signature)

    def test_empty_checkout_signature_rejected(self):
        assert not _adapter().verify_payment_signature("order_1", "pay_1", "")

    def test_checkout_signature_without_secret(self):
        adapter = _adapter()
        adapter.key_secret = ""
        with pytest.raises(RazorpaySignatureError):
            adapter.verify_payment_signature("order_1", "pay_1", "abc")

    def test_webhook_signature_over_raw_body(self):
        body = b'{"event":"payment.captured"}'
        assert _adapter().verify_webhook_signature(body, _sign(WEBHOOK_SECRET, body))

    def test_webhook_signature_after_reserialization_rejected(self):
        body = b'{"event":"payment.captured"}'
        signature = _sign(WEBHOOK_SECRET, body)
        assert not _adapter().verify_webhook_signature(b'{"event": "payment.captured"}', signature)

    def test_webhook_signature_without_secret(self):
        adapter = _adapter()
        adapter.webhook_secret = ""
        with pytest.raises(RazorpaySignatureError):
            adapter.verify_webhook_signature(b"{}", "abc")


class TestParseWebhookEvent:
    def test_payment_captured(self):
        event = _adapter().parse_webhook_event(
            {
                "event": "payment.captured",
                "payload": {
                    "payment": {
                        "entity": {"id": "pay_1", "order_id": "order_1", "amount": 299900}
                    }
                },
            }
        )
        assert event.event == "payment.captured"
        assert event.order_id == "order_1"
        assert event.payment_id == "pay_1"
        assert event.amount == 299900

    def test_payment_failed_carries_error(self):
        event = _adapter().parse_webhook_event(
            {
                "event": "payment.failed",
                "payload": {
                    "payment": {
                        "entity": {
                            "id": "pay_2",
                            "order_id": "order_2",
                            "error_code": "BAD_REQUEST_ERROR",
                            "error_description": "Card declined",
                        }
                    }
                },
            }
        )
        assert event.error_code == "BAD_REQUEST_ERROR"
        assert event.error_description == "Card declined"

    def test_order_paid_without_payment_entity(self):
        event = _adapter().parse_webhook_event(
            {"event": "order.paid", "payload": {"order": {"entity": {"id": "order_3", "amount": 100}}}}
        )
        assert event.order_id == "order_3"
        assert event.payment_id is None
        assert event.amount == 100
