"""Static role → permission map.

Permission codes are ``<resource>:<verb>``; endpoints guard themselves with
``require_permission("quote:write")`` and never test roles directly.
"""

from __future__ import annotations

from backend.app.models.user import RoleEnum

ALL_PERMISSIONS: dict[str, str] = {
    "client:read": "View clients",
    "client:write": "Create/update/delete clients",
    "catalog:read": "View categories and products",
    "catalog:write": "Manage categories and products",
    "equipment:read": "View installed equipment",
    "equipment:write": "Register and maintain equipment",
    "quote:read": "View quotes",
    "quote:write": "Create, edit and move quotes through their lifecycle",
    "quote:delete": "Delete draft quotes",
    "user:manage": "Create/update/deactivate users",
}

ROLE_PERMISSIONS: dict[RoleEnum, frozenset[str]] = {
    RoleEnum.ADMIN: frozenset(ALL_PERMISSIONS),
    RoleEnum.MANAGER: frozenset(ALL_PERMISSIONS) - {"user:manage"},
    RoleEnum.USER: frozenset({
        "client:read",
        "catalog:read",
        "equipment:read",
        "quote:read",
        "quote:write",
    }),
}


def permissions_for(role: RoleEnum) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())
