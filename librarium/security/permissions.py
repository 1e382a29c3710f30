from __future__ import annotations
from typing import Optional

from librarium.models.user import User

P_BOOKS_READ = "books:read"
P_BOOKS_WRITE = "books:write"
P_BOOKS_DELETE = "books:delete"
P_BOOKS_ENRICH = "books:enrich"

P_REQUESTS_READ = "requests:read"
P_REQUESTS_CREATE = "requests:create"
P_REQUESTS_RESOLVE = "requests:resolve"

P_CHECKOUTS_READ = "checkouts:read"
P_CHECKOUTS_RETURN = "checkouts:return"

P_AUDIT_READ = "audit:read"
P_DASHBOARD_READ = "dashboard:read"

P_USERS_READ = "users:read"
P_USERS_UPDATE_ROLE = "users:update_role"
P_SECURITY_EVENTS_READ = "security_events:read"

ENDPOINT_PERMISSIONS: dict[str, str] = {
    # catalog
    "books.list_books": P_BOOKS_READ,
    "books.get_book": P_BOOKS_READ,
    "books.create_book": P_BOOKS_WRITE,
    "books.update_book": P_BOOKS_WRITE,
    "books.delete_book": P_BOOKS_DELETE,
    "books.enrich_book": P_BOOKS_ENRICH,

    # borrow lifecycle
    "requests.list_requests": P_REQUESTS_READ,
    "requests.create_request": P_REQUESTS_CREATE,
    "requests.resolve_request": P_REQUESTS_RESOLVE,
    "checkouts.list_checkouts": P_CHECKOUTS_READ,
    "checkouts.return_checkout": P_CHECKOUTS_RETURN,

    # reporting / administration
    "admin.list_audit": P_AUDIT_READ,
    "admin.overdue": P_DASHBOARD_READ,
    "admin.list_users": P_USERS_READ,
    "admin.set_user_role": P_USERS_UPDATE_ROLE,
    "admin.list_security_events": P_SECURITY_EVENTS_READ,
}

_MEMBER = {
    P_BOOKS_READ,
    P_REQUESTS_READ, P_REQUESTS_CREATE,
    P_CHECKOUTS_READ,
}

ROLE_PERMISSIONS: dict[str, set[str]] = {
    User.Roles.MEMBER: _MEMBER,
    User.Roles.LIBRARIAN: _MEMBER | {
        P_BOOKS_WRITE, P_BOOKS_ENRICH,
        P_REQUESTS_RESOLVE,
        P_CHECKOUTS_RETURN,
        P_AUDIT_READ, P_DASHBOARD_READ,
    },
    User.Roles.ADMIN: {"*"},
}


def get_required_permission(endpoint: str | None, method: str) -> Optional[str]:
    if not endpoint:
        return None
    return ENDPOINT_PERMISSIONS.get(endpoint)


def role_has_permission(role: str | None, permission: str) -> bool:
    if not role:
        return False
    perms = ROLE_PERMISSIONS.get(role, set())
    return ("*" in perms) or (permission in perms)
