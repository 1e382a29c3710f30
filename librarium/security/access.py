from __future__ import annotations
from flask import Request

from librarium.models.user import User
from .permissions import get_required_permission, role_has_permission

PUBLIC_ENDPOINTS = {"health", "index", "routes"}


def is_public_endpoint(endpoint: str | None) -> bool:
    if not endpoint:
        return False
    if endpoint.startswith("auth."):
        return True
    return endpoint in PUBLIC_ENDPOINTS


def check_access(user, req: Request) -> bool:
    role = getattr(user, "role", None)

    if role == User.Roles.ADMIN:
        return True

    # endpoints without a mapped permission are admin-only
    required = get_required_permission(req.endpoint, req.method)
    if not required:
        return False
    return role_has_permission(role, required)
