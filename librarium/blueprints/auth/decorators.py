from functools import wraps

from flask import abort, jsonify, session

from librarium.extensions import db
from librarium.models import User


def current_user() -> User:
    """The authenticated actor for this request."""
    user_id = session.get("user_id")
    user = db.session.get(User, user_id) if user_id else None
    if user is None:
        abort(401)
    return user


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            return jsonify(error="auth_required"), 401
        return fn(*args, **kwargs)
    return wrapper


def role_required(*roles):
    """
    Usage:
      @role_required("ADMIN")
      @role_required(*User.Roles.STAFF)
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not session.get("user_id"):
                return jsonify(error="auth_required"), 401

            role = current_user().role
            if role not in roles:
                return jsonify(
                    error="forbidden",
                    required_roles=list(roles),
                    current_role=role,
                ), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
