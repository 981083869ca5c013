"""
Unit tests for Google ID-token verification.
"""

import httpx
import pytest

from adapters.identity import GoogleAuthError, GoogleIdentityAdapter

CLIENT_ID = "unit-client.apps.googleusercontent.com"


def _token_info(**overrides) -> dict:
    info = {
        "aud": CLIENT_ID,
        "iss": "https://accounts.google.com",
        "sub": "110169484474386276334",
        "email": "Registrar@Springfield.edu",
        "email_verified": "true",
        "name": "Registrar",
        "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
    }
    info.update(overrides)
    return info


def _adapter(status_code: int = 200, body: dict | None = None) -> GoogleIdentityAdapter:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id_token"] == "id-token"
        return httpx.Response(status_code, json=body if body is not None else _token_info())

    return GoogleIdentityAdapter(client_id=CLIENT_ID, transport=httpx.MockTransport(handler))


async def test_valid_token_returns_identity():
    identity = await _adapter().verify_id_token("id-token")

    assert identity.google_id == "110169484474386276334"
    assert identity.email == "registrar@springfield.edu"
    assert identity.name == "Registrar"
    assert identity.picture.endswith("photo.jpg")


async def test_name_defaults_to_email_local_part():
    identity = await _adapter(body=_token_info(name=None)).verify_id_token("id-token")
    assert identity.name == "registrar"


@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "someone-else.apps.googleusercontent.com"},
        {"iss": "https://evil.example.com"},
        {"sub": ""},
        {"email": ""},
    ],
)
async def test_rejected_claims(overrides):
    with pytest.raises(GoogleAuthError):
        await _adapter(body=_token_info(**overrides)).verify_id_token("id-token")


async def test_unverified_email_rejected():
    with pytest.raises(GoogleAuthError) as exc_info:
        await _adapter(body=_token_info(email_verified="false")).verify_id_token("id-token")
    assert "not verified" in str(exc_info.value)


async def test_tokeninfo_rejection():
    with pytest.raises(GoogleAuthError):
        await _adapter(400, {"error": "invalid_token"}).verify_id_token("id-token")


async def test_unreachable_google():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    adapter = GoogleIdentityAdapter(client_id=CLIENT_ID, transport=httpx.MockTransport(handler))
    with pytest.raises(GoogleAuthError):
        await adapter.verify_id_token("id-token")
