from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class BorrowRequest(db.Model):
    __tablename__ = "borrow_requests"

    class Status:
        PENDING = "PENDING"
        APPROVED = "APPROVED"
        DENIED = "DENIED"

        ALL = (PENDING, APPROVED, DENIED)

    id = db.Column(db.Integer, primary_key=True)

    book_id = db.Column(
        db.Integer,
        db.ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    status = db.Column(db.String(20), nullable=False, default=Status.PENDING, index=True)

    requested_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    resolved_at = db.Column(db.DateTime)
    resolved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    # set only on approval
    due_date = db.Column(db.DateTime)

    # concurrent resolutions of the same request fail with StaleDataError
    version_id = db.Column(db.Integer, nullable=False)

    book = db.relationship("Book", back_populates="requests")
    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("borrow_requests", lazy="dynamic"))
    resolved_by = db.relationship("User", foreign_keys=[resolved_by_id])

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        db.Index(
            "uq_borrow_requests_pending_book_user",
            "book_id",
            "user_id",
            unique=True,
            sqlite_where=db.text("status = 'PENDING'"),
            postgresql_where=db.text("status = 'PENDING'"),
        ),
    )

    def to_dict(self, *, with_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "status": self.status,
            "requested_at": isoformat(self.requested_at),
            "resolved_at": isoformat(self.resolved_at),
            "resolved_by_id": self.resolved_by_id,
            "due_date": isoformat(self.due_date),
        }
        if with_relations:
            data["book"] = self.book.to_brief() if self.book else None
            data["user"] = self.user.to_brief() if self.user else None
            data["resolved_by"] = self.resolved_by.to_brief() if self.resolved_by else None
        return data
