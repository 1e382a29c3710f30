from __future__ import annotations

from datetime import datetime, timezone

from flask import abort, request


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def parse_bool(v) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        vv = v.lower().strip()
        if vv in {"true", "1", "yes"}:
            return True
        if vv in {"false", "0", "no"}:
            return False
    raise ValueError("invalid boolean")


def int_arg(name: str, default: int | None = None, *, minimum: int | None = None, maximum: int | None = None):
    """Read an integer query argument, aborting with 400 when it is malformed."""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        abort(400, description=f"{name} must be int")
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def client_ip(req) -> str | None:
    xff = req.headers.get("X-Forwarded-For")
    if xff:
        return xff.split(",")[0].strip()
    return req.remote_addr
