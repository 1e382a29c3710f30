from sqlalchemy import event

from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class AuditLogImmutable(Exception):
    pass


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    # who did it
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    user = db.relationship("User")

    # on what (books may be deleted later; the entry stays)
    book_id = db.Column(
        db.Integer,
        db.ForeignKey("books.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    book = db.relationship("Book")

    action = db.Column(db.String(40), nullable=False, index=True)
    details = db.Column(db.Text, nullable=False, default="")

    # request context, when there was one
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(255))
    endpoint = db.Column(db.String(120), index=True)
    method = db.Column(db.String(10))
    path = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    class Actions:
        BORROW_REQUESTED = "BORROW_REQUESTED"
        BORROW_APPROVED = "BORROW_APPROVED"
        BORROW_DENIED = "BORROW_DENIED"
        RETURNED = "RETURNED"

        BOOK_CREATED = "BOOK_CREATED"
        BOOK_UPDATED = "BOOK_UPDATED"
        BOOK_DELETED = "BOOK_DELETED"
        AI_ENRICHED = "AI_ENRICHED"

        ROLE_CHANGED = "ROLE_CHANGED"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user": self.user.to_brief() if self.user else None,
            "book_id": self.book_id,
            "book": {"id": self.book.id, "title": self.book.title} if self.book else None,
            "action": self.action,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "endpoint": self.endpoint,
            "method": self.method,
            "path": self.path,
            "created_at": isoformat(self.created_at),
        }


@event.listens_for(AuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditLogImmutable(f"audit log entry {target.id} is append-only")


@event.listens_for(AuditLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditLogImmutable(f"audit log entry {target.id} is append-only")
