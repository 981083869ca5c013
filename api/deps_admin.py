"""
Role-based access dependencies for the admin back office and the client portal.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from api.routes.auth import get_current_user
from infrastructure.database.models.user import User, UserRole

_ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
_PORTAL_ROLES = (UserRole.USER.value, UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Dependency to verify current user is an admin.

    Requires user to have ADMIN or SUPER_ADMIN role.

    Raises:
        HTTPException: 403 if user is not an admin
    """
    if current_user.role not in _ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required. You do not have permission to access this resource.",
        )

    return current_user


async def get_current_super_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency to verify current user is a super admin."""
    if current_user.role != UserRole.SUPER_ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required. You do not have permission to access this resource.",
        )

    return current_user


async def get_portal_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Dependency for the client self-service portal.

    The user must be linked to a client organization.

    Raises:
        HTTPException: 403 if the user has no organization
    """
    if current_user.role not in _PORTAL_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Portal access is not available for this account",
        )
    if not current_user.client_organization_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No organization is linked to this account",
        )

    return current_user
