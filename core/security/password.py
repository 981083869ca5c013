"""
Password hashing utilities using bcrypt.
"""

import secrets

from passlib.context import CryptContext


class PasswordHasher:
    """Password hashing and verification using bcrypt."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str | None) -> bool:
        """
        Verify a password against a hash.

        Accounts created through Google have no hash; they never match.
        """
        if not hashed_password:
            return False
        return self._context.verify(plain_password, hashed_password)


def generate_verification_code() -> str:
    """Six-digit numeric code emailed alongside the verification link."""
    return f"{secrets.randbelow(1_000_000):06d}"


# Singleton instance
password_hasher = PasswordHasher()
