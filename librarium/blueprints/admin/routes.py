from __future__ import annotations

from datetime import datetime

from flask import abort, current_app, jsonify, request
from sqlalchemy import func

from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, Checkout, SecurityEvent, User
from librarium.services.audit import record_audit
from librarium.services.transaction import atomic
from librarium.utils import int_arg, json_body, utcnow

from ..auth.decorators import current_user, login_required, role_required
from . import bp


def _parse_iso_dt(value: str) -> datetime:
    """
    Accepts ISO 8601 with or without a trailing Z.
    e.g. 2026-01-12T14:00:00Z / 2026-01-12T14:00:00
    """
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1]
    try:
        return datetime.fromisoformat(v)
    except ValueError:
        abort(
            400,
            description="Invalid datetime format. Use ISO 8601, e.g. 2026-01-12T14:00:00Z",
        )


# -------------------
# AUDIT
# -------------------


@bp.get("/audit")
@login_required
@role_required(*User.Roles.STAFF)
def list_audit():
    limit = int_arg("limit", 50, minimum=1, maximum=200)
    user_id = int_arg("user_id")
    book_id = int_arg("book_id")
    action = (request.args.get("action") or "").strip().upper()
    dt_from = (request.args.get("from") or "").strip()
    dt_to = (request.args.get("to") or "").strip()

    q = AuditLog.query

    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    if book_id is not None:
        q = q.filter(AuditLog.book_id == book_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if dt_from:
        q = q.filter(AuditLog.created_at >= _parse_iso_dt(dt_from))
    if dt_to:
        q = q.filter(AuditLog.created_at <= _parse_iso_dt(dt_to))

    items = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify(items=[a.to_dict() for a in items]), 200


# -------------------
# DASHBOARD
# -------------------


@bp.get("/overdue")
@login_required
@role_required(*User.Roles.STAFF)
def overdue():
    now = utcnow()

    overdue_checkouts = (
        Checkout.query
        .filter(Checkout.returned_at.is_(None), Checkout.due_date < now)
        .order_by(Checkout.due_date.asc())
        .all()
    )

    return jsonify(
        overdue_checkouts=[c.to_dict() for c in overdue_checkouts],
        overdue_count=len(overdue_checkouts),
        total_checked_out=Checkout.query.filter(Checkout.returned_at.is_(None)).count(),
        pending_requests=BorrowRequest.query.filter_by(status=BorrowRequest.Status.PENDING).count(),
        total_books=Book.query.count(),
        available_books=Book.query.filter_by(status=Book.Status.AVAILABLE).count(),
    ), 200


# -------------------
# USERS
# -------------------


@bp.get("/users")
@login_required
@role_required(User.Roles.ADMIN)
def list_users():
    checkout_counts = (
        db.session.query(Checkout.user_id, func.count(Checkout.id))
        .group_by(Checkout.user_id)
        .all()
    )
    request_counts = (
        db.session.query(BorrowRequest.user_id, func.count(BorrowRequest.id))
        .group_by(BorrowRequest.user_id)
        .all()
    )
    checkouts_by_user = dict(checkout_counts)
    requests_by_user = dict(request_counts)

    users = User.query.order_by(User.created_at.desc(), User.id.desc()).limit(200).all()

    return jsonify(
        items=[
            u.to_dict() | {
                "checkouts": checkouts_by_user.get(u.id, 0),
                "borrow_requests": requests_by_user.get(u.id, 0),
            }
            for u in users
        ]
    ), 200


@bp.put("/users/<int:user_id>/role")
@login_required
@role_required(User.Roles.ADMIN)
def set_user_role(user_id: int):
    new_role = (json_body().get("role") or "").strip().upper()

    if new_role not in User.Roles.ALL:
        abort(400, description="Invalid role")

    actor = current_user()
    if actor.id == user_id:
        abort(400, description="Cannot change your own role")

    with atomic("set_user_role"):
        user = db.session.get(User, user_id)
        if user is None:
            abort(404)

        old_role = user.role
        user.role = new_role

        record_audit(
            actor_id=actor.id,
            action=AuditLog.Actions.ROLE_CHANGED,
            details=f"Changed role of {user.email} from {old_role} to {new_role}",
        )

    current_app.logger.info("role changed: user=%s %s -> %s by=%s", user.id, old_role, new_role, actor.id)
    return jsonify(message="Role updated", id=user.id, old_role=old_role, role=user.role), 200


# -------------------
# SECURITY EVENTS
# -------------------


@bp.get("/security-events")
@login_required
@role_required(User.Roles.ADMIN)
def list_security_events():
    """
    Most recent security events (max 200), with basic filters.
    """
    limit_n = int_arg("limit", 100, minimum=1, maximum=200)
    status_code = int_arg("status_code")
    user_id = int_arg("user_id")
    event_type = (request.args.get("event_type") or "").strip()
    ip = (request.args.get("ip") or "").strip()
    endpoint = (request.args.get("endpoint") or "").strip()

    q = SecurityEvent.query

    if event_type:
        q = q.filter(SecurityEvent.event_type == event_type)
    if status_code is not None:
        q = q.filter(SecurityEvent.status_code == status_code)
    if user_id is not None:
        q = q.filter(SecurityEvent.user_id == user_id)
    if ip:
        q = q.filter(SecurityEvent.ip == ip)
    if endpoint:
        q = q.filter(SecurityEvent.endpoint == endpoint)

    items = q.order_by(SecurityEvent.id.desc()).limit(limit_n).all()
    return jsonify(items=[e.to_dict() for e in items]), 200
