from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class Checkout(db.Model):
    __tablename__ = "checkouts"

    id = db.Column(db.Integer, primary_key=True)

    book_id = db.Column(
        db.Integer,
        db.ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    borrow_request_id = db.Column(
        db.Integer,
        db.ForeignKey("borrow_requests.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    checked_out_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    due_date = db.Column(db.DateTime, nullable=False, index=True)
    # NULL while the loan is open
    returned_at = db.Column(db.DateTime, index=True)
    version_id = db.Column(db.Integer, nullable=False)

    book = db.relationship("Book", back_populates="checkouts")
    user = db.relationship("User", backref=db.backref("checkouts", lazy="dynamic"))
    borrow_request = db.relationship("BorrowRequest", backref=db.backref("checkout", uselist=False))

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        # at most one open checkout per book
        db.Index(
            "uq_checkouts_open_book",
            "book_id",
            unique=True,
            sqlite_where=db.text("returned_at IS NULL"),
            postgresql_where=db.text("returned_at IS NULL"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def is_overdue(self, now=None) -> bool:
        return self.is_open and self.due_date < (now or utcnow())

    def to_dict(self, *, with_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "borrow_request_id": self.borrow_request_id,
            "checked_out_at": isoformat(self.checked_out_at),
            "due_date": isoformat(self.due_date),
            "returned_at": isoformat(self.returned_at),
            "is_overdue": self.is_overdue(),
        }
        if with_relations:
            data["book"] = self.book.to_brief() if self.book else None
            data["user"] = self.user.to_brief() if self.user else None
        return data
