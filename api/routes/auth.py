"""
Authentication API routes.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from adapters.identity import GoogleAuthError, google_identity
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.auth import (
    AuthResponse,
    EmailCodeVerificationRequest,
    EmailVerificationRequest,
    GoogleAuthRequest,
    LoginRequest,
    PasswordChangeRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResendVerificationRequest,
    UserResponse,
    VerifyEmailResponse,
)
from api.schemas.common import MessageResponse
from core.security.password import generate_verification_code, password_hasher
from core.security.tokens import TokenPayload, TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import ActivityType, AuthProvider, User, UserRole
from infrastructure.database.models.base import as_utc
from services.activity import log_activity

logger = logging.getLogger(__name__)

VERIFICATION_CODE_LIFETIME = timedelta(hours=24)

# Verified against when the email is unknown so the response time does not
# reveal whether an account exists
_DUMMY_HASH = "$2b$12$WmDNGEj9s7YLV5sV/N7aBOpWL0.T5.R5ZQOeKHNlLB.d7WN4HFXIC"


def _get_cookie_kwargs() -> dict:
    """Cross-site cookies for deployed frontends, Lax cookies for local development."""
    is_deployed = not any(
        h in settings.frontend_url for h in ("localhost", "127.0.0.1", "0.0.0.0")
    )
    use_cross_site = settings.is_production or is_deployed
    return dict(
        httponly=True,
        secure=use_cross_site,
        samesite="none" if use_cross_site else "lax",
        path="/",
    )


def _set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> None:
    """Set HttpOnly auth cookies on response."""
    kwargs = _get_cookie_kwargs()
    response.set_cookie(
        "access_token",
        access_token,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        **kwargs,
    )
    response.set_cookie(
        "refresh_token",
        refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 86400,
        **kwargs,
    )


def _clear_auth_cookies(response: JSONResponse) -> None:
    kwargs = _get_cookie_kwargs()
    response.delete_cookie("access_token", **kwargs)
    response.delete_cookie("refresh_token", **kwargs)


router = APIRouter(prefix="/auth", tags=["Authentication"])

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
    refresh_token_expire_days=settings.jwt_refresh_token_expire_days,
)


def issued_before_password_change(payload: TokenPayload, user: User) -> bool:
    """True if the token predates the user's last password change."""
    if not user.password_changed_at or not payload.iat:
        return False
    # JWT iat has whole-second precision
    return payload.iat < as_utc(user.password_changed_at).replace(microsecond=0)


def _auth_response(
    user: User,
    message: Optional[str] = None,
    is_new_user: Optional[bool] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Token pair in the body and in HttpOnly cookies."""
    access_token, refresh_token = token_service.create_token_pair(
        user_id=user.id, email=user.email, role=user.role
    )
    body = AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=token_service.access_token_expire_seconds,
        email_verified=user.email_verified,
        message=message,
        is_new_user=is_new_user,
    )
    response = JSONResponse(
        content=body.model_dump(mode="json", exclude_none=True), status_code=status_code
    )
    _set_auth_cookies(response, access_token, refresh_token)
    return response


def _verified_response(user: User, message: str) -> JSONResponse:
    access_token, refresh_token = token_service.create_token_pair(
        user_id=user.id, email=user.email, role=user.role
    )
    body = VerifyEmailResponse(
        message=message,
        user=UserResponse.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=token_service.access_token_expire_seconds,
    )
    response = JSONResponse(content=body.model_dump(mode="json"))
    _set_auth_cookies(response, access_token, refresh_token)
    return response


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    # Authorization header first (API clients, tests), then the HttpOnly cookie
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get("access_token")


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Accepts a Bearer token in the Authorization header or the HttpOnly
    ``access_token`` cookie.
    """
    token = _extract_token(request, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = token_service.verify_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await db.get(User, payload.sub)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    if issued_before_password_change(payload, user):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalidated due to password change. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_optional_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like ``get_current_user`` but returns None for anonymous or invalid credentials."""
    token = _extract_token(request, authorization)
    if not token:
        return None
    payload = token_service.verify_access_token(token)
    if not payload:
        return None
    user = await db.get(User, payload.sub)
    if not user or not user.is_active or issued_before_password_change(payload, user):
        return None
    return user


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


def _issue_verification(user: User) -> tuple[str, str]:
    """Fresh link token and 6-digit code, stored on the user."""
    token = token_service.create_email_verification_token(user.id, user.email)
    code = generate_verification_code()
    user.email_verification_token = token
    user.verification_code = code
    user.verification_code_expires = datetime.now(UTC) + VERIFICATION_CODE_LIFETIME
    return token, code


async def _complete_verification(
    db: AsyncSession, user: User, request: Request
) -> JSONResponse:
    user.email_verified = True
    user.email_verification_token = None
    user.verification_code = None
    user.verification_code_expires = None
    log_activity(db, ActivityType.EMAIL_VERIFY, "Email verified", user_id=user.id, request=request)
    await db.commit()

    await email_service.send_welcome_email(user.email, user.name)
    logger.info("Email verified for user %s", user.id)
    return _verified_response(user, "Email verified successfully")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
async def register(
    request: Request,
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new email/password account.

    The account can log in straight away; a verification link and code are
    emailed to confirm the address.
    """
    if await _get_user_by_email(db, register_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    user = User(
        email=register_data.email.lower(),
        name=register_data.name.strip(),
        password_hash=password_hasher.hash(register_data.password),
        provider=AuthProvider.EMAIL.value,
        role=UserRole.USER.value,
        is_active=True,
        email_verified=False,
        login_count=0,
    )
    db.add(user)
    await db.flush()

    token, code = _issue_verification(user)
    log_activity(db, ActivityType.USER_REGISTER, "User registered", user_id=user.id, request=request)
    await db.commit()

    await email_service.send_verification_email(
        to_email=user.email,
        user_name=user.name,
        verification_token=token,
        verification_code=code,
    )
    logger.info("Registered user %s", user.id)
    return _auth_response(
        user,
        message="Registration successful. Please check your email to verify your account.",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(get_rate_limit("login"))
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Unverified accounts may log in; the response carries
    ``email_verified`` so the client can prompt for verification.
    """
    user = await _get_user_by_email(db, login_data.email)

    password_ok = password_hasher.verify(
        login_data.password,
        user.password_hash if user and user.password_hash else _DUMMY_HASH,
    )
    if not user or not user.password_hash or not password_ok:
        log_activity(
            db,
            ActivityType.USER_LOGIN,
            "Failed login attempt",
            user_id=user.id if user else None,
            request=request,
            metadata={"email": login_data.email.lower()},
            success=False,
            error_message="Invalid email or password",
        )
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    user.last_login = datetime.now(UTC)
    user.login_count = (user.login_count or 0) + 1
    log_activity(db, ActivityType.USER_LOGIN, "User logged in", user_id=user.id, request=request)
    await db.commit()

    return _auth_response(user)


@router.post("/google", response_model=AuthResponse)
@limiter.limit(get_rate_limit("google"))
async def google_sign_in(
    request: Request,
    body: GoogleAuthRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Sign in with a Google ID token.

    An existing account with the same email is linked to the Google
    identity; otherwise a new GOOGLE account is created.
    """
    try:
        identity = await google_identity.verify_id_token(body.token)
    except GoogleAuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e

    result = await db.execute(select(User).where(User.google_id == identity.google_id))
    user = result.scalar_one_or_none() or await _get_user_by_email(db, identity.email)
    is_new_user = user is None

    if user is None:
        user = User(
            email=identity.email.lower(),
            name=identity.name or identity.email.split("@")[0],
            provider=AuthProvider.GOOGLE.value,
            google_id=identity.google_id,
            avatar_url=identity.picture,
            role=UserRole.USER.value,
            is_active=True,
            email_verified=True,
            login_count=0,
        )
        db.add(user)
        await db.flush()
        log_activity(
            db,
            ActivityType.USER_REGISTER,
            "User registered with Google",
            user_id=user.id,
            request=request,
            metadata={"provider": AuthProvider.GOOGLE.value},
        )
    else:
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is inactive",
            )
        user.google_id = identity.google_id
        user.avatar_url = user.avatar_url or identity.picture
        user.email_verified = True

    user.last_login = datetime.now(UTC)
    user.login_count = (user.login_count or 0) + 1
    log_activity(
        db,
        ActivityType.USER_LOGIN,
        "User logged in with Google",
        user_id=user.id,
        request=request,
        metadata={"provider": AuthProvider.GOOGLE.value},
    )
    await db.commit()

    return _auth_response(user, is_new_user=is_new_user)


async def _verify_email_token(db: AsyncSession, token: str, request: Request) -> JSONResponse:
    decoded = token_service.verify_email_verification_token(token)
    if decoded is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token",
        )
    user_id, email = decoded

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.email != email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token",
        )
    if user.email_verified:
        return JSONResponse(
            content=VerifyEmailResponse(
                message="Email is already verified", already_verified=True
            ).model_dump(mode="json")
        )
    return await _complete_verification(db, user, request)


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    request: Request,
    body: EmailVerificationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Verify an email address from the link token."""
    return await _verify_email_token(db, body.token, request)


@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email_link(
    request: Request,
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    return await _verify_email_token(db, token, request)


@router.post("/verify-email-code", response_model=VerifyEmailResponse)
async def verify_email_code(
    request: Request,
    body: EmailCodeVerificationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Verify an email address with the 6-digit code."""
    user = await _get_user_by_email(db, body.email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.email_verified:
        return JSONResponse(
            content=VerifyEmailResponse(
                message="Email is already verified", already_verified=True
            ).model_dump(mode="json")
        )

    if not user.verification_code or not secrets.compare_digest(user.verification_code, body.code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid verification code",
        )
    expires = as_utc(user.verification_code_expires)
    if expires is None or expires < datetime.now(UTC):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Verification code has expired. Please request a new one.",
        )

    return await _complete_verification(db, user, request)


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(get_rate_limit("resend_verification"))
async def resend_verification(
    request: Request,
    body: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await _get_user_by_email(db, body.email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already verified",
        )

    token, code = _issue_verification(user)
    await db.commit()

    await email_service.send_verification_email(
        to_email=user.email,
        user_name=user.name,
        verification_token=token,
        verification_code=code,
    )
    return {"message": "Verification email sent"}


@router.post("/refresh-token", response_model=AuthResponse)
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange a refresh token for a new token pair.

    The HttpOnly cookie is used first, then the request body.
    """
    refresh_tok = request.cookies.get("refresh_token")
    if not refresh_tok and body and body.refresh_token:
        refresh_tok = body.refresh_token

    if not refresh_tok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    payload = token_service.verify_refresh_token(refresh_tok)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user = await db.get(User, payload.sub)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    if issued_before_password_change(payload, user):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalidated due to password change. Please log in again.",
        )

    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get current authenticated user profile.
    """
    return current_user


@router.post("/change-password", response_model=AuthResponse)
async def change_password(
    request: Request,
    body: PasswordChangeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
):
    """
    Change the password of an email/password account.

    Tokens issued before the change stop working; a fresh pair is returned.
    """
    if current_user.provider != AuthProvider.EMAIL.value or not current_user.password_hash:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password change is not available for Google sign-in accounts",
        )
    if not password_hasher.verify(body.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.password_hash = password_hasher.hash(body.new_password)
    current_user.password_changed_at = datetime.now(UTC)
    log_activity(
        db,
        ActivityType.PASSWORD_CHANGE,
        "Password changed",
        user_id=current_user.id,
        request=request,
    )
    await db.commit()

    return _auth_response(current_user, message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    db: AsyncSession = Depends(get_db),
):
    """Clear the auth cookies."""
    if current_user is not None:
        log_activity(
            db, ActivityType.USER_LOGOUT, "User logged out", user_id=current_user.id, request=request
        )
        await db.commit()

    response = JSONResponse(content={"message": "Logged out successfully"})
    _clear_auth_cookies(response)
    return response
