from __future__ import annotations

from flask import has_request_context, request

from librarium.extensions import db
from librarium.models.audit_log import AuditLog
from librarium.utils import client_ip


def record_audit(
    *,
    actor_id: int,
    action: str,
    book_id: int | None = None,
    details: str = "",
) -> AuditLog:
    """
    Adds an audit entry to the current session without committing it, so the
    entry lands (or rolls back) together with the change it describes.
    """
    entry = AuditLog(
        user_id=actor_id,
        book_id=book_id,
        action=action,
        details=details,
    )

    if has_request_context():
        ua = request.headers.get("User-Agent")
        entry.ip_address = client_ip(request) or "unknown"
        entry.user_agent = ua[:255] if ua else None
        entry.endpoint = request.endpoint
        entry.method = request.method
        entry.path = request.path

    db.session.add(entry)
    return entry
