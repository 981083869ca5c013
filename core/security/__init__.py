"""
Security utilities for authentication and authorization.
"""

from .password import PasswordHasher, generate_verification_code, password_hasher
from .tokens import TokenPayload, TokenService

__all__ = [
    "PasswordHasher",
    "password_hasher",
    "generate_verification_code",
    "TokenService",
    "TokenPayload",
]
