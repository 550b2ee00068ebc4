"""
Role-Based Access Control (RBAC) Module

Shop roles are stored on the user row; administrative endpoints (including
the audit trail) require ``admin``, workshop endpoints accept staff.
"""

from enum import Enum
from typing import Set
from fastapi import HTTPException, status
import logging

from app.models.user import User

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles."""
    CLIENT = "client"
    CLIENT_PROFESSIONNEL = "client_professionnel"
    EMPLOYE = "employe"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained permissions."""
    REQUEST_QUOTES = "request_quotes"
    MANAGE_WORKSHOP = "manage_workshop"
    MANAGE_BILLING = "manage_billing"
    MANAGE_CATALOGUE = "manage_catalogue"
    MANAGE_USERS = "manage_users"
    VIEW_AUDIT_LOG = "view_audit_log"


ROLE_PERMISSIONS: dict[Role, Set[Permission]] = {
    Role.CLIENT: {Permission.REQUEST_QUOTES},
    Role.CLIENT_PROFESSIONNEL: {Permission.REQUEST_QUOTES},
    Role.EMPLOYE: {Permission.MANAGE_WORKSHOP},
    Role.ADMIN: set(Permission),  # All permissions
}


def get_user_role(user: User) -> Role:
    """Determine user's role; unknown values fall back to the least privileged."""
    try:
        return Role(user.role)
    except ValueError:
        return Role.CLIENT


def get_user_permissions(user: User) -> Set[Permission]:
    """Get all permissions for a user based on their role."""
    return ROLE_PERMISSIONS.get(get_user_role(user), set())


def has_permission(user: User, permission: Permission) -> bool:
    """Check if user has a specific permission."""
    return permission in get_user_permissions(user)


def require_admin(current_user: User) -> None:
    """Raise 403 unless the user is an administrator."""
    role = get_user_role(current_user)
    if role is not Role.ADMIN:
        logger.warning(
            f"Admin access denied for user {current_user.id}",
            extra={"user_id": current_user.id, "role": role.value}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )


def require_staff(current_user: User) -> None:
    """Raise 403 unless the user can work on workshop tasks."""
    if not has_permission(current_user, Permission.MANAGE_WORKSHOP):
        logger.warning(
            f"Workshop access denied for user {current_user.id}",
            extra={"user_id": current_user.id, "role": current_user.role}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Workshop staff access required"
        )
