"""
Authentication request and response schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


def _check_password_strength(v: str) -> str:
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Registration request schema."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class GoogleAuthRequest(BaseModel):
    """Google Sign-In ID token."""

    token: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token request; the cookie is used when the body omits it."""

    refresh_token: Optional[str] = None


class EmailVerificationRequest(BaseModel):
    token: str


class EmailCodeVerificationRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class PasswordChangeRequest(BaseModel):
    """Password change request schema."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_new_password: Optional[str] = None

    @field_validator("new_password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordChangeRequest":
        if self.confirm_new_password is not None and self.confirm_new_password != self.new_password:
            raise ValueError("New passwords do not match")
        return self


class UserResponse(BaseModel):
    """User response schema."""

    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: str
    provider: str
    email_verified: bool
    is_active: bool
    client_organization_id: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Tokens plus the authenticated user."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires
    email_verified: bool
    message: Optional[str] = None
    is_new_user: Optional[bool] = None


class VerifyEmailResponse(BaseModel):
    message: str
    already_verified: bool = False
    user: Optional[UserResponse] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
