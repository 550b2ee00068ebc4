# Security module
from app.security.rbac import require_admin, require_staff, has_permission

__all__ = [
    "require_admin",
    "require_staff",
    "has_permission",
]
