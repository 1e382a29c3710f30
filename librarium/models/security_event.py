from __future__ import annotations

from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class SecurityEvent(db.Model):
    __tablename__ = "security_events"

    id = db.Column(db.Integer, primary_key=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    # "deny_unauthorized" | "deny_blocked" | "deny_forbidden" | "rate_limited"
    event_type = db.Column(db.String(32), nullable=False, index=True)

    status_code = db.Column(db.Integer, nullable=False, index=True)

    endpoint = db.Column(db.String(128), nullable=True, index=True)
    blueprint = db.Column(db.String(64), nullable=True, index=True)
    method = db.Column(db.String(10), nullable=True)
    path = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, nullable=True, index=True)
    role = db.Column(db.String(32), nullable=True, index=True)

    ip = db.Column(db.String(64), nullable=True, index=True)

    details = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": isoformat(self.created_at),
            "event_type": self.event_type,
            "status_code": self.status_code,
            "endpoint": self.endpoint,
            "blueprint": self.blueprint,
            "method": self.method,
            "path": self.path,
            "user_id": self.user_id,
            "role": self.role,
            "ip": self.ip,
            "details": self.details,
        }
