"""
Unit tests for role-based access dependencies.
"""

import pytest
from fastapi import HTTPException

from api.deps_admin import get_current_admin_user, get_current_super_admin_user, get_portal_user
from infrastructure.database.models import User, UserRole


def _user(role: UserRole, client_organization_id: str | None = None) -> User:
    return User(
        email=f"{role.value.lower()}@example.com",
        name=role.value.title(),
        role=role.value,
        client_organization_id=client_organization_id,
    )


class TestAdminDependency:
    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SUPER_ADMIN])
    async def test_admin_roles_allowed(self, role):
        user = _user(role)
        assert await get_current_admin_user(user) is user

    async def test_regular_user_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin_user(_user(UserRole.USER))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail.startswith("Admin access required")


class TestSuperAdminDependency:
    async def test_super_admin_allowed(self):
        user = _user(UserRole.SUPER_ADMIN)
        assert await get_current_super_admin_user(user) is user

    async def test_admin_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_super_admin_user(_user(UserRole.ADMIN))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail.startswith("Super admin access required")


class TestPortalDependency:
    async def test_linked_user_allowed(self):
        user = _user(UserRole.USER, client_organization_id="org-1")
        assert await get_portal_user(user) is user

    async def test_unlinked_user_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_portal_user(_user(UserRole.USER))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "No organization is linked to this account"
