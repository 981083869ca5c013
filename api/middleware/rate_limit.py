"""
Rate limiting using slowapi.

Public write endpoints (auth, demo requests, the contact form and checkout)
carry their own limits; everything else falls under the global default
applied by SlowAPIMiddleware.

Rate Limits:
- Login: 5 per minute
- Registration: 3 per minute
- Google sign-in: 10 per minute
- Resend verification: 5 per hour
- Demo request / contact form: 5 per minute
- Checkout: 10 per minute
- Default: 100 per minute
"""

import logging

from slowapi import Limiter

from core.security.client_ip import get_real_ip
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "login": "5/minute",
    "register": "3/minute",
    "google": "10/minute",
    "resend_verification": "5/hour",
    "demo_request": "5/minute",
    "contact": "5/minute",
    "checkout": "10/minute",
    "default": "100/minute",
}

_storage_uri = settings.redis_url if settings.redis_url else "memory://"

if not settings.redis_url:
    logger.warning(
        "Rate limiter using in-memory storage; not suitable for multi-worker production"
    )
    if settings.environment == "production":
        logger.critical(
            "Rate limiter has no Redis in production. "
            "Limits are per-process only. Set REDIS_URL in environment variables."
        )

limiter = Limiter(
    key_func=get_real_ip,
    storage_uri=_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get the rate limit string for an endpoint key.

    Example:
        >>> get_rate_limit("login")
        '5/minute'
        >>> get_rate_limit("unknown")
        '100/minute'
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
