"""
Guild developer API adapter.

Guild is the multi-tenant alumni platform DigiKite sells. Tenants are
created and kept in sync with their DigiKite subscription through Guild's
``/developer`` endpoints. Guild wraps results as ``{"data": ...}`` and
reports failures as ``{"message": ...}``.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from infrastructure.config.settings import settings

if TYPE_CHECKING:
    from infrastructure.database.models import ClientOrganization, Subscription

logger = logging.getLogger(__name__)


class GuildError(Exception):
    """Base exception for Guild adapter errors."""

    pass


class GuildAPIError(GuildError):
    """Raised when Guild rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GuildOrganization:
    """Result of provisioning a tenant."""

    org_id: str
    tenant_code: str
    admin_credentials: dict[str, Any] | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "GuildOrganization":
        return cls(
            org_id=str(data.get("id", "")),
            tenant_code=data.get("tenantCode", ""),
            admin_credentials=data.get("adminCredentials"),
        )


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class GuildAdapter:
    """Client for the Guild developer API."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = (api_url or settings.guild_api_url).rstrip("/")
        self.api_key = api_key or settings.guild_api_key or ""
        self._transport = transport

        if not self.api_key:
            logger.warning("Guild API key not configured. Set GUILD_API_KEY in settings.")

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
            "X-Digikite-Integration": "true",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Call Guild and return the decoded JSON body.

        Raises:
            GuildAPIError: On a non-2xx response or transport failure
        """
        url = f"{self.api_url}{endpoint}"
        logger.info("Guild API %s %s", method, endpoint)

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._get_headers(), json=data)
        except httpx.RequestError as e:
            logger.error("Guild API request failed: %s (%s)", e, endpoint)
            raise GuildAPIError(f"Guild API unreachable: {e}") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            message = message or f"Guild API error: {response.status_code}"
            logger.error("Guild API request failed: %s (%s)", message, endpoint)
            raise GuildAPIError(message, status_code=response.status_code)

        return body if isinstance(body, dict) else {"data": body}

    async def create_organization(
        self,
        client: "ClientOrganization",
        subscription: "Subscription",
    ) -> GuildOrganization:
        """Provision a Guild tenant for ``client`` sized by ``subscription``."""
        plan = subscription.plan
        payload = {
            "name": client.name,
            "shortName": client.short_name,
            "email": client.contact_email,
            "phone": client.contact_phone,
            "address": client.address,
            "website": client.website,
            "logoUrl": client.logo_url,
            "organizationType": client.organization_type,
            "foundationYear": client.foundation_year,
            "description": client.description,
            "subscription": {
                "planCode": plan.code if plan else "STARTER",
                "billingCycle": subscription.billing_cycle,
                "startDate": _iso(subscription.start_date),
                "endDate": _iso(subscription.end_date),
                "maxUsers": subscription.effective_max_users,
                "storageQuotaMB": subscription.effective_storage_quota_mb,
                "features": (plan.features if plan else None) or [],
            },
        }
        result = await self._make_request("POST", "/developer/organizations", payload)
        org = GuildOrganization.from_api_response(result.get("data") or {})
        logger.info("Guild organization created: %s (%s)", org.org_id, org.tenant_code)
        return org

    async def create_admin_user(
        self, guild_org_id: str, name: str, email: str, password: str
    ) -> dict[str, Any]:
        result = await self._make_request(
            "POST",
            f"/developer/organizations/{guild_org_id}/users",
            {"name": name, "email": email, "password": password, "role": "ADMIN"},
        )
        logger.info("Guild admin user created in org %s", guild_org_id)
        return result.get("data") or {}

    async def update_subscription(
        self, guild_org_id: str, subscription: "Subscription"
    ) -> dict[str, Any]:
        """Push status, plan and limits of ``subscription`` to the tenant."""
        plan = subscription.plan
        payload = {
            "status": subscription.status,
            "planCode": plan.code if plan else None,
            "billingCycle": subscription.billing_cycle,
            "endDate": _iso(subscription.end_date),
            "maxUsers": subscription.effective_max_users,
            "storageQuotaMB": subscription.effective_storage_quota_mb,
            "features": plan.features if plan else None,
        }
        result = await self._make_request(
            "PUT", f"/developer/organizations/{guild_org_id}/subscription", payload
        )
        logger.info("Guild subscription updated for org %s: %s", guild_org_id, subscription.status)
        return result.get("data") or {}

    async def get_organization_stats(self, guild_org_id: str) -> dict[str, Any]:
        result = await self._make_request("GET", f"/developer/organizations/{guild_org_id}/stats")
        return result.get("data") or {}

    async def toggle_maintenance(
        self, guild_org_id: str, enabled: bool, message: str | None = None
    ) -> dict[str, Any]:
        payload = {
            "enabled": enabled,
            "message": message or ("System is under maintenance" if enabled else None),
        }
        result = await self._make_request(
            "POST", f"/developer/organizations/{guild_org_id}/maintenance", payload
        )
        return result.get("data") or {}

    async def suspend_organization(
        self, guild_org_id: str, reason: str = "Subscription expired"
    ) -> dict[str, Any]:
        result = await self._make_request(
            "PUT",
            f"/developer/organizations/{guild_org_id}/status",
            {"status": "SUSPENDED", "reason": reason},
        )
        logger.info("Guild organization %s suspended: %s", guild_org_id, reason)
        return result.get("data") or {}

    async def reactivate_organization(self, guild_org_id: str) -> dict[str, Any]:
        result = await self._make_request(
            "PUT",
            f"/developer/organizations/{guild_org_id}/status",
            {"status": "ACTIVE"},
        )
        logger.info("Guild organization %s reactivated", guild_org_id)
        return result.get("data") or {}

    async def get_dashboard_stats(self) -> dict[str, Any]:
        result = await self._make_request("GET", "/developer/dashboard")
        return result.get("data") or {}

    async def health_check(self) -> dict[str, Any]:
        """Report Guild reachability. Never raises."""
        try:
            result = await self._make_request("GET", "/health")
        except GuildError as e:
            return {"status": "unhealthy", "guild_api_url": self.api_url, "error": str(e)}
        return {"status": "healthy", "guild_api_url": self.api_url, "response": result}


# Singleton instance
guild_adapter = GuildAdapter()
