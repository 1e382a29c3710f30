from flask import Blueprint, abort, jsonify, request

from librarium.models import Checkout, User
from librarium.services import lifecycle
from librarium.utils import parse_bool
from ..auth.decorators import current_user, login_required, role_required

bp = Blueprint("checkouts", __name__, url_prefix="/checkouts")


@bp.get("/")
@login_required
def list_checkouts():
    user = current_user()
    active = (request.args.get("active") or "").strip()
    user_id = (request.args.get("user_id") or "").strip()

    query = Checkout.query

    if active:
        try:
            only_active = parse_bool(active)
        except ValueError:
            abort(400, description="active must be true/false")
        if only_active:
            query = query.filter(Checkout.returned_at.is_(None))

    if not user.is_staff:
        query = query.filter(Checkout.user_id == user.id)
    elif user_id:
        try:
            query = query.filter(Checkout.user_id == int(user_id))
        except ValueError:
            abort(400, description="user_id must be int")

    items = query.order_by(Checkout.checked_out_at.desc(), Checkout.id.desc()).all()
    return jsonify(items=[c.to_dict() for c in items]), 200


@bp.post("/<int:checkout_id>/return")
@login_required
@role_required(*User.Roles.STAFF)
def return_checkout(checkout_id: int):
    checkout = lifecycle.return_book(checkout_id=checkout_id, actor=current_user())
    return jsonify(message="returned", **checkout.to_dict()), 200
