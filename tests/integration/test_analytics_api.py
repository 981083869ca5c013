"""
Integration tests for activity analytics.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import ActivityType, User
from services.activity import log_activity

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def activities(db_session: AsyncSession, test_user: User) -> None:
    log_activity(db_session, ActivityType.USER_REGISTER, "Registered", user_id=test_user.id)
    log_activity(db_session, ActivityType.USER_LOGIN, "Logged in", user_id=test_user.id)
    log_activity(
        db_session,
        ActivityType.USER_LOGIN,
        "Failed login",
        user_id=test_user.id,
        success=False,
        error_message="Invalid password",
    )
    log_activity(
        db_session,
        ActivityType.PAYMENT_SUCCESS,
        "Payment of 2999.00 INR received",
        metadata={"order_id": "order_1"},
        revenue=2999.0,
    )
    await db_session.commit()


class TestAnalyticsDashboard:
    async def test_summary(self, async_client: AsyncClient, admin_headers, activities):
        response = await async_client.get("/api/v1/analytics/dashboard", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        summary = data["summary"]
        assert data["days"] == 30
        assert summary["total_activities"] == 4
        assert summary["user_registrations"] == 1
        assert summary["user_logins"] == 2
        assert summary["payment_success"] == 1
        assert summary["total_revenue"] == 2999.0
        assert summary["error_count"] == 1
        assert summary["success_rate"] == 75.0
        assert sum(day["count"] for day in data["daily"]) == 4
        assert data["top_types"][0] == {"type": "USER_LOGIN", "count": 2}

    async def test_empty(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get("/api/v1/analytics/dashboard", headers=admin_headers)

        summary = response.json()["summary"]
        assert summary["total_activities"] == 0
        assert summary["success_rate"] == 100.0

    async def test_days_bounds(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get(
            "/api/v1/analytics/dashboard", headers=admin_headers, params={"days": 400}
        )
        assert response.status_code == 422

    async def test_requires_admin(self, async_client: AsyncClient, auth_headers):
        response = await async_client.get("/api/v1/analytics/dashboard", headers=auth_headers)
        assert response.status_code == 403


class TestTimeline:
    async def test_user_timeline(
        self, async_client: AsyncClient, admin_headers, test_user: User, activities
    ):
        response = await async_client.get(
            f"/api/v1/analytics/timeline/{test_user.id}", headers=admin_headers
        )

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 3
        assert {item["type"] for item in items} == {"USER_REGISTER", "USER_LOGIN"}

    async def test_pagination(
        self, async_client: AsyncClient, admin_headers, test_user: User, activities
    ):
        response = await async_client.get(
            f"/api/v1/analytics/timeline/{test_user.id}",
            headers=admin_headers,
            params={"limit": 2, "offset": 2},
        )
        assert len(response.json()) == 1

    async def test_my_timeline_records_login(self, async_client: AsyncClient, test_user: User):
        login = await async_client.post(
            "/api/v1/auth/login",
            json={"email": "test@example.com", "password": "TestPass123"},
            headers={"User-Agent": "Mozilla/5.0 (Windows NT 10.0) Chrome/120.0"},
        )
        token = login.json()["access_token"]

        response = await async_client.get(
            "/api/v1/analytics/my-timeline", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        entry = response.json()[0]
        assert entry["type"] == "USER_LOGIN"
        assert entry["device_info"]["browser"] == "Chrome"
        assert entry["device_info"]["os"] == "Windows"
