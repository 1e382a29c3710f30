from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class Book(db.Model):
    __tablename__ = "books"

    class Status:
        AVAILABLE = "AVAILABLE"
        REQUESTED = "REQUESTED"
        CHECKED_OUT = "CHECKED_OUT"

        ALL = (AVAILABLE, REQUESTED, CHECKED_OUT)

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False, index=True)
    author = db.Column(db.String(255), nullable=False, index=True)
    genre = db.Column(db.String(100), index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    description = db.Column(db.Text)
    isbn = db.Column(db.String(32), index=True)
    cover_url = db.Column(db.String(500))
    difficulty = db.Column(db.String(20))

    # written only by librarium.services.lifecycle
    status = db.Column(db.String(20), nullable=False, default=Status.AVAILABLE, index=True)

    # bumped on every UPDATE; a stale write raises StaleDataError
    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    requests = db.relationship(
        "BorrowRequest",
        back_populates="book",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    checkouts = db.relationship(
        "Checkout",
        back_populates="book",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    __mapper_args__ = {"version_id_col": version_id}

    # fields staff may edit through the catalog endpoints and enrichment
    DESCRIPTIVE_FIELDS = ("title", "author", "genre", "tags", "description", "isbn", "cover_url", "difficulty")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "tags": list(self.tags or []),
            "description": self.description,
            "isbn": self.isbn,
            "cover_url": self.cover_url,
            "difficulty": self.difficulty,
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def to_brief(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "cover_url": self.cover_url,
            "status": self.status,
        }
