"""
API request and response schemas.
"""

from .auth import (
    AuthResponse,
    LoginRequest,
    PasswordChangeRequest,
    RefreshTokenRequest,
    RegisterRequest,
    UserResponse,
)
from .common import MessageResponse, PaginatedResponse

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "UserResponse",
    "PasswordChangeRequest",
    "RefreshTokenRequest",
    "MessageResponse",
    "PaginatedResponse",
]
