from flask import Blueprint, abort, jsonify, request

from librarium.models import BorrowRequest, User
from librarium.services import lifecycle
from librarium.utils import json_body
from ..auth.decorators import current_user, login_required, role_required

bp = Blueprint("requests", __name__, url_prefix="/requests")


# ---------- LIST ----------
@bp.get("/")
@login_required
def list_requests():
    user = current_user()
    status = (request.args.get("status") or "").strip().upper()

    query = BorrowRequest.query

    # members only ever see their own requests
    if not user.is_staff:
        query = query.filter(BorrowRequest.user_id == user.id)

    if status:
        if status not in BorrowRequest.Status.ALL:
            abort(400, description="Invalid status")
        query = query.filter(BorrowRequest.status == status)

    reqs = query.order_by(BorrowRequest.requested_at.desc(), BorrowRequest.id.desc()).all()
    return jsonify(items=[r.to_dict() for r in reqs]), 200


# ---------- CREATE ----------
@bp.post("/")
@login_required
def create_request():
    data = json_body()
    book_id = data.get("book_id")

    if not book_id:
        return jsonify(error="missing_fields", required=["book_id"]), 400
    if isinstance(book_id, bool) or not isinstance(book_id, int):
        abort(400, description="book_id must be int")

    req = lifecycle.submit_request(book_id=book_id, actor=current_user())
    return jsonify(message="created", **req.to_dict()), 201


# ---------- APPROVE / DENY (STAFF) ----------
@bp.put("/<int:request_id>")
@login_required
@role_required(*User.Roles.STAFF)
def resolve_request(request_id: int):
    data = json_body()
    action = (data.get("action") or "").strip().lower()
    due_days = data.get("due_days")

    try:
        req = lifecycle.resolve_request(
            request_id=request_id,
            action=action,
            actor=current_user(),
            due_days=due_days,
        )
    except ValueError as exc:
        abort(400, description=str(exc))

    return jsonify(message="approved" if action == lifecycle.APPROVE else "denied", **req.to_dict()), 200
