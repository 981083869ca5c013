"""
Integration tests for demo request endpoints.

Covers:
- Public demo request form
- Lead management by the sales team
- Demo scheduling and completion
- Conversion statistics
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import AdminNotification, DemoRequest, DemoStatus

pytestmark = pytest.mark.asyncio

DEMO_FORM = {
    "organization_name": "Riverdale College Alumni",
    "contact_name": "Priya Sharma",
    "contact_email": "Priya@Riverdale.edu",
    "contact_phone": "+91 90000 00001",
    "organization_type": "COLLEGE",
    "estimated_members": 1200,
    "message": "We would like to see the events module.",
}


async def _submit(async_client: AsyncClient, **overrides):
    with patch(
        "services.demo_requests.email_service.send_demo_request_confirmation",
        new_callable=AsyncMock,
    ) as mock_confirm:
        response = await async_client.post("/api/v1/demo/request", json={**DEMO_FORM, **overrides})
    return response, mock_confirm


class TestRequestDemo:
    """Tests for POST /demo/request."""

    async def test_creates_lead(self, async_client: AsyncClient, db_session: AsyncSession):
        response, mock_confirm = await _submit(async_client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "NEW"
        assert "24 hours" in data["message"]

        demo = await db_session.get(DemoRequest, data["id"])
        assert demo.contact_email == "priya@riverdale.edu"
        mock_confirm.assert_awaited_once_with(
            "priya@riverdale.edu", "Priya Sharma", "Riverdale College Alumni"
        )

    async def test_notifies_back_office(self, async_client: AsyncClient, db_session: AsyncSession):
        await _submit(async_client)

        result = await db_session.execute(select(AdminNotification))
        notification = result.scalar_one()
        assert notification.type == "DEMO_REQUEST"
        assert "Riverdale College Alumni" in notification.message
        assert notification.is_read is False

    async def test_no_login_required(self, async_client: AsyncClient):
        response, _ = await _submit(async_client)
        assert response.status_code == 201

    @pytest.mark.parametrize(
        "overrides",
        [
            {"organization_name": "R"},
            {"contact_name": ""},
            {"contact_email": "not-an-email"},
            {"estimated_members": -5},
        ],
    )
    async def test_validation(self, async_client: AsyncClient, overrides):
        response, mock_confirm = await _submit(async_client, **overrides)
        assert response.status_code == 422
        mock_confirm.assert_not_awaited()


class TestManageDemoRequests:
    """Admin-only lead management."""

    @pytest.fixture
    async def demo(self, db_session: AsyncSession) -> DemoRequest:
        demo = DemoRequest(
            organization_name="Hill Valley High Alumni",
            contact_name="Marty McFly",
            contact_email="marty@hillvalley.edu",
            organization_type="SCHOOL",
            status=DemoStatus.NEW.value,
        )
        db_session.add(demo)
        await db_session.commit()
        return demo

    async def test_list_requires_admin(self, async_client: AsyncClient, auth_headers, demo):
        response = await async_client.get("/api/v1/demo/requests", headers=auth_headers)
        assert response.status_code == 403

    async def test_list_requires_auth(self, async_client: AsyncClient, demo):
        response = await async_client.get("/api/v1/demo/requests")
        assert response.status_code == 401

    async def test_list_and_search(self, async_client: AsyncClient, admin_headers, demo):
        response = await async_client.get(
            "/api/v1/demo/requests", headers=admin_headers, params={"search": "hill valley"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["contact_name"] == "Marty McFly"

        empty = await async_client.get(
            "/api/v1/demo/requests", headers=admin_headers, params={"search": "gotham"}
        )
        assert empty.json()["total"] == 0

    async def test_filter_by_status(self, async_client: AsyncClient, admin_headers, demo):
        response = await async_client.get(
            "/api/v1/demo/requests", headers=admin_headers, params={"status": "CONTACTED"}
        )
        assert response.json()["total"] == 0

    async def test_get_unknown(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get("/api/v1/demo/requests/missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Demo request not found"

    async def test_partial_update(self, async_client: AsyncClient, admin_headers, demo):
        response = await async_client.put(
            f"/api/v1/demo/requests/{demo.id}",
            headers=admin_headers,
            json={"status": "CONTACTED", "notes": "Called on Monday"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CONTACTED"
        assert data["notes"] == "Called on Monday"
        assert data["contact_email"] == "marty@hillvalley.edu"

    async def test_schedule_and_complete(
        self, async_client: AsyncClient, admin_headers, admin_user, demo
    ):
        scheduled = await async_client.put(
            f"/api/v1/demo/requests/{demo.id}/schedule",
            headers=admin_headers,
            json={"scheduled_at": "2030-05-01T10:00:00Z", "assigned_to_id": admin_user.id},
        )
        assert scheduled.status_code == 200
        assert scheduled.json()["status"] == "DEMO_SCHEDULED"
        assert scheduled.json()["assigned_to_id"] == admin_user.id

        completed = await async_client.put(
            f"/api/v1/demo/requests/{demo.id}/complete",
            headers=admin_headers,
            json={"outcome": "Interested in Professional"},
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "DEMO_COMPLETED"
        assert completed.json()["demo_outcome"] == "Interested in Professional"
        assert completed.json()["demo_completed_at"] is not None

    async def test_stats(self, async_client: AsyncClient, admin_headers, db_session, demo):
        db_session.add(
            DemoRequest(
                organization_name="Converted Org",
                contact_name="Someone",
                contact_email="someone@converted.org",
                organization_type="SCHOOL",
                status=DemoStatus.CONVERTED.value,
            )
        )
        await db_session.commit()

        response = await async_client.get("/api/v1/demo/requests/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["new"] == 1
        assert data["converted"] == 1
        assert data["conversion_rate"] == 50.0
