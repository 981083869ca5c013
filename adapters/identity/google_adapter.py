"""
Google Identity Services ID-token verification.

The browser obtains an ID token from Google Sign-In and posts it to
``/auth/google``. The token is validated against Google's tokeninfo
endpoint, which checks the signature and expiry server-side.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

_VALID_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


class GoogleAuthError(Exception):
    """Raised when an ID token is invalid or cannot be verified."""

    pass


@dataclass
class GoogleIdentity:
    """Claims taken from a verified Google ID token."""

    google_id: str
    email: str
    name: str
    picture: str | None

    @classmethod
    def from_token_info(cls, data: dict[str, Any]) -> "GoogleIdentity":
        email = data.get("email", "")
        return cls(
            google_id=data["sub"],
            email=email.lower(),
            name=data.get("name") or email.split("@")[0],
            picture=data.get("picture"),
        )


class GoogleIdentityAdapter:
    """Verifies Google ID tokens."""

    TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"

    def __init__(
        self,
        client_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id or settings.google_client_id
        self._transport = transport

    async def verify_id_token(self, id_token: str) -> GoogleIdentity:
        """
        Verify ``id_token`` and return the identity it asserts.

        Raises:
            GoogleAuthError: If the token is rejected, issued for another
                client, or carries an unverified email address
        """
        if not self.client_id:
            raise GoogleAuthError("Google sign-in is not configured")

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(self.TOKENINFO_URL, params={"id_token": id_token})
        except httpx.RequestError as e:
            logger.error("Google tokeninfo request failed: %s", e)
            raise GoogleAuthError("Could not verify Google token") from e

        if response.status_code != 200:
            raise GoogleAuthError("Invalid Google token")

        data = response.json()
        if data.get("aud") != self.client_id:
            logger.warning("Google token audience mismatch")
            raise GoogleAuthError("Invalid Google token")
        if data.get("iss") not in _VALID_ISSUERS:
            raise GoogleAuthError("Invalid Google token")
        # tokeninfo returns booleans as strings
        if str(data.get("email_verified", "")).lower() != "true":
            raise GoogleAuthError("Google account email is not verified")
        if not data.get("sub") or not data.get("email"):
            raise GoogleAuthError("Invalid Google token")

        return GoogleIdentity.from_token_info(data)


google_identity = GoogleIdentityAdapter()
