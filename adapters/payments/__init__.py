"""Payment adapters."""

from .razorpay_adapter import (
    RazorpayAdapter,
    RazorpayAPIError,
    RazorpayAuthError,
    RazorpayError,
    RazorpayOrder,
    RazorpayPayment,
    RazorpaySignatureError,
    RazorpayWebhookEvent,
    create_razorpay_adapter,
    razorpay_adapter,
    to_paise,
)

__all__ = [
    "RazorpayAdapter",
    "RazorpayOrder",
    "RazorpayPayment",
    "RazorpayWebhookEvent",
    "RazorpayError",
    "RazorpayAPIError",
    "RazorpayAuthError",
    "RazorpaySignatureError",
    "create_razorpay_adapter",
    "razorpay_adapter",
    "to_paise",
]
