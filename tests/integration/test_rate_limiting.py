"""
Integration tests for per-endpoint rate limits on public write endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_login_limited_to_five_per_minute(async_client: AsyncClient, test_user):
    body = {"email": "test@example.com", "password": "WrongPass1"}

    statuses = [
        (await async_client.post("/api/v1/auth/login", json=body)).status_code for _ in range(6)
    ]

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429


async def test_contact_form_limited(async_client: AsyncClient):
    form = {
        "name": "Apu",
        "email": "apu@kwikemart.com",
        "subject": "support",
        "message": "Please call me back about pricing.",
    }
    with patch(
        "services.contact.email_service.send_contact_confirmation", new_callable=AsyncMock
    ), patch(
        "services.contact.email_service.send_contact_admin_notification", new_callable=AsyncMock
    ):
        statuses = [
            (await async_client.post("/api/v1/contact/submit", json=form)).status_code
            for _ in range(6)
        ]

    assert statuses.count(201) == 5
    assert statuses[-1] == 429


async def test_limit_is_per_client_ip(async_client: AsyncClient, test_user):
    body = {"email": "test@example.com", "password": "WrongPass1"}
    for _ in range(5):
        await async_client.post("/api/v1/auth/login", json=body)

    response = await async_client.post(
        "/api/v1/auth/login", json=body, headers={"X-Forwarded-For": "8.8.4.4"}
    )

    assert response.status_code == 401
