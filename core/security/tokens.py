"""
JWT token service for authentication.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

ACCESS = "access"
REFRESH = "refresh"
EMAIL_VERIFICATION = "email_verification"


@dataclass
class TokenPayload:
    """JWT token payload structure."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str  # access, refresh or email_verification
    email: str | None = None
    role: str | None = None


class TokenService:
    """Creates and validates the JWTs issued to DigiKite users."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60 * 24 * 7,
        refresh_token_expire_days: int = 30,
        email_verification_expire_hours: int = 24,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes
        self._refresh_token_expire_days = refresh_token_expire_days
        self._email_verification_expire_hours = email_verification_expire_hours

    @property
    def access_token_expire_seconds(self) -> int:
        return self._access_token_expire_minutes * 60

    def _encode(self, claims: dict, lifetime: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + lifetime}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        role: str | None = None,
    ) -> str:
        """Create a short-lived access token carrying email and role claims."""
        claims = {"sub": user_id, "type": ACCESS}
        if email:
            claims["email"] = email
        if role:
            claims["role"] = role
        return self._encode(claims, timedelta(minutes=self._access_token_expire_minutes))

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(
            {"sub": user_id, "type": REFRESH},
            timedelta(days=self._refresh_token_expire_days),
        )

    def create_token_pair(
        self,
        user_id: str,
        email: str | None = None,
        role: str | None = None,
    ) -> tuple[str, str]:
        """
        Create both access and refresh tokens.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        return (
            self.create_access_token(user_id, email, role),
            self.create_refresh_token(user_id),
        )

    def create_email_verification_token(self, user_id: str, email: str) -> str:
        """Create the token embedded in the verification link."""
        return self._encode(
            {"sub": user_id, "email": email, "type": EMAIL_VERIFICATION},
            timedelta(hours=self._email_verification_expire_hours),
        )

    def decode_token(self, token: str) -> TokenPayload | None:
        """
        Decode and validate a JWT token.

        Returns:
            TokenPayload if valid, None if invalid, expired or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )
        except JWTError:
            return None

        for field in ("sub", "exp", "type"):
            if field not in payload:
                return None

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
            type=payload["type"],
            email=payload.get("email"),
            role=payload.get("role"),
        )

    def _verify_type(self, token: str, token_type: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == token_type:
            return payload
        return None

    def verify_access_token(self, token: str) -> TokenPayload | None:
        return self._verify_type(token, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenPayload | None:
        return self._verify_type(token, REFRESH)

    def verify_email_verification_token(self, token: str) -> tuple[str, str] | None:
        """
        Verify an email verification token.

        Returns:
            Tuple of (user_id, email) if valid, None otherwise
        """
        payload = self._verify_type(token, EMAIL_VERIFICATION)
        if payload is None or not payload.email:
            return None
        return payload.sub, payload.email
