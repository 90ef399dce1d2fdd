"""Role based permissions for the admin API."""

from enum import Enum


class Permission(str, Enum):
    CONTACTS_READ = "contacts:read"
    CONTACTS_UPDATE = "contacts:update"
    CONTACTS_DELETE = "contacts:delete"
    APPOINTMENTS_READ = "appointments:read"
    APPOINTMENTS_CREATE = "appointments:create"
    APPOINTMENTS_UPDATE = "appointments:update"
    APPOINTMENTS_DELETE = "appointments:delete"
    SLOTS_READ = "slots:read"
    SLOTS_MANAGE = "slots:manage"
    DASHBOARD_READ = "dashboard:read"


ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"

ROLE_PERMISSIONS: dict[str, frozenset[Permission]] = {
    ROLE_ADMIN: frozenset(Permission),
    ROLE_STAFF: frozenset(
        {
            Permission.CONTACTS_READ,
            Permission.CONTACTS_UPDATE,
            Permission.APPOINTMENTS_READ,
            Permission.APPOINTMENTS_CREATE,
            Permission.APPOINTMENTS_UPDATE,
            Permission.SLOTS_READ,
            Permission.DASHBOARD_READ,
        }
    ),
}


def has_permission(role: str | None, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get((role or "").strip().lower(), frozenset())
