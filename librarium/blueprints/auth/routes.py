from flask import Blueprint, current_app, jsonify, session
from sqlalchemy import or_

from librarium.extensions import db
from librarium.models import User
from librarium.utils import json_body

bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


def _start_session(user: User) -> None:
    session.clear()
    session["user_id"] = user.id
    session["role"] = user.role


# ---------- REGISTER ----------
@bp.post("/register")
def register():
    data = json_body()

    email = (data.get("email") or "").strip().lower()
    username = (data.get("username") or "").strip()
    name = (data.get("name") or "").strip() or None
    password = data.get("password") or ""

    if not email or not username or not password:
        return jsonify(
            error="missing_fields",
            required=["email", "username", "password"]
        ), 400

    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify(error="weak_password", min_length=MIN_PASSWORD_LENGTH), 400

    exists = User.query.filter(
        or_(User.email == email, User.username == username)
    ).first()
    if exists:
        return jsonify(error="user_exists"), 409

    # self-registration always yields a member; staff roles are granted by an admin
    user = User(email=email, username=username, name=name, role=User.Roles.MEMBER)
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    _start_session(user)
    current_app.logger.info("user registered: id=%s email=%s", user.id, user.email)

    return jsonify(message="created", **user.to_dict()), 201


# ---------- LOGIN ----------
@bp.post("/login")
def login():
    data = json_body()

    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(error="missing_fields", required=["email", "password"]), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify(error="invalid_credentials"), 401

    if not user.is_active or user.is_blocked:
        return jsonify(error="user_blocked"), 403

    _start_session(user)
    return jsonify(message="ok", **user.to_dict()), 200


# ---------- LOGOUT ----------
@bp.post("/logout")
def logout():
    session.clear()
    return jsonify(message="logged_out"), 200


# ---------- WHO AM I ----------
@bp.get("/me")
def me():
    user_id = session.get("user_id")
    if not user_id:
        return jsonify(authenticated=False), 200

    user = db.session.get(User, user_id)
    if not user:
        session.clear()
        return jsonify(authenticated=False), 200

    return jsonify(authenticated=True, **user.to_dict()), 200
