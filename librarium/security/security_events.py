from __future__ import annotations

from flask import Request, session, current_app

from librarium.extensions import db
from librarium.models.security_event import SecurityEvent
from librarium.utils import client_ip


def record_security_event(
    *,
    event_type: str,
    status_code: int,
    req: Request,
    user=None,
    details: str | None = None,
) -> None:
    """
    Best-effort: never breaks the request.
    Not stored while TESTING.
    """
    if current_app.config.get("TESTING"):
        return

    try:
        user_id = session.get("user_id") or getattr(user, "id", None)
        role = getattr(user, "role", None)

        ev = SecurityEvent(
            event_type=event_type,
            status_code=status_code,
            endpoint=req.endpoint,
            blueprint=req.blueprint,
            method=req.method,
            path=req.path,
            user_id=user_id,
            role=role,
            ip=client_ip(req),
            details=details,
        )
        db.session.add(ev)
        db.session.commit()
    except Exception:
        current_app.logger.exception("could not record security event %s", event_type)
        db.session.rollback()
