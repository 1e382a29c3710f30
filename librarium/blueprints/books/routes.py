from flask import Blueprint, abort, current_app, jsonify, request
from sqlalchemy import or_

from librarium.errors import InvalidState, NotFound
from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, Checkout, User
from librarium.services.audit import record_audit
from librarium.services.enrichment import apply_enrichment
from librarium.services.transaction import atomic
from librarium.utils import int_arg, json_body
from ..auth.decorators import current_user, login_required, role_required

bp = Blueprint("books", __name__, url_prefix="/books")

MAX_PAGE_SIZE = 100


def _clean_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        abort(400, description=f"{key} must be a string")
    return value.strip() or None


def _clean_tags(data: dict) -> list[str]:
    tags = data.get("tags")
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        abort(400, description="tags must be a list of strings")
    return [t.strip() for t in tags if t.strip()]


def _descriptive_fields(data: dict) -> dict:
    if "status" in data:
        abort(400, description="status is managed by the borrow workflow")

    fields = {
        "title": _clean_str(data, "title"),
        "author": _clean_str(data, "author"),
        "genre": _clean_str(data, "genre"),
        "description": _clean_str(data, "description"),
        "isbn": _clean_str(data, "isbn"),
        "cover_url": _clean_str(data, "cover_url"),
        "difficulty": _clean_str(data, "difficulty"),
        "tags": _clean_tags(data),
    }
    return fields


def _get_book(book_id: int) -> Book:
    book = db.session.get(Book, book_id)
    if book is None:
        raise NotFound("Book not found")
    return book


# ---------- LIST / SEARCH ----------
@bp.get("/")
@login_required
def list_books():
    search = (request.args.get("search") or "").strip()
    genre = (request.args.get("genre") or "").strip()
    status = (request.args.get("status") or "").strip().upper()
    tag = (request.args.get("tag") or "").strip()
    page = int_arg("page", 1, minimum=1)
    limit = int_arg("limit", 20, minimum=1, maximum=MAX_PAGE_SIZE)

    query = Book.query

    if search:
        like = f"%{search}%"
        query = query.filter(or_(Book.title.ilike(like), Book.author.ilike(like), Book.isbn.ilike(like)))

    if genre:
        query = query.filter(Book.genre.ilike(genre))

    if status:
        if status not in Book.Status.ALL:
            abort(400, description="Invalid status")
        query = query.filter(Book.status == status)

    if tag:
        # tags are a JSON array; match the quoted element in its text form
        query = query.filter(db.cast(Book.tags, db.String).ilike(f'%"{tag}"%'))

    total = query.count()
    books = (
        query.order_by(Book.created_at.desc(), Book.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return jsonify(
        items=[b.to_dict() for b in books],
        total=total,
        page=page,
        pages=(total + limit - 1) // limit,
    ), 200


# ---------- DETAIL ----------
@bp.get("/<int:book_id>")
@login_required
def get_book(book_id: int):
    book = _get_book(book_id)

    pending = (
        book.requests.filter(BorrowRequest.status == BorrowRequest.Status.PENDING)
        .order_by(BorrowRequest.requested_at.desc())
        .all()
    )
    recent_checkouts = book.checkouts.order_by(Checkout.checked_out_at.desc()).limit(10).all()

    data = book.to_dict()
    data["pending_requests"] = [r.to_dict(with_relations=False) | {"user": r.user.to_brief()} for r in pending]
    data["checkouts"] = [c.to_dict(with_relations=False) | {"user": c.user.to_brief()} for c in recent_checkouts]
    return jsonify(data), 200


# ---------- CREATE ----------
@bp.post("/")
@login_required
@role_required(*User.Roles.STAFF)
def create_book():
    fields = _descriptive_fields(json_body())

    if not fields["title"] or not fields["author"]:
        return jsonify(error="missing_fields", required=["title", "author"]), 400

    actor = current_user()
    with atomic("create_book"):
        book = Book(status=Book.Status.AVAILABLE, **fields)
        db.session.add(book)
        db.session.flush()

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.BOOK_CREATED,
            details=f"Created book: {book.title} by {book.author}",
        )

    current_app.logger.info("book created: id=%s by=%s", book.id, actor.id)
    return jsonify(message="created", **book.to_dict()), 201


# ---------- UPDATE ----------
@bp.put("/<int:book_id>")
@login_required
@role_required(*User.Roles.STAFF)
def update_book(book_id: int):
    fields = _descriptive_fields(json_body())

    if not fields["title"] or not fields["author"]:
        return jsonify(error="missing_fields", required=["title", "author"]), 400

    actor = current_user()
    with atomic("update_book"):
        book = _get_book(book_id)
        for key, value in fields.items():
            setattr(book, key, value)

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.BOOK_UPDATED,
            details=f"Updated book: {book.title} by {book.author}",
        )

    return jsonify(message="updated", **book.to_dict()), 200


# ---------- DELETE ----------
@bp.delete("/<int:book_id>")
@login_required
@role_required(User.Roles.ADMIN)
def delete_book(book_id: int):
    actor = current_user()
    with atomic("delete_book"):
        book = _get_book(book_id)

        if book.status == Book.Status.CHECKED_OUT:
            raise InvalidState("Book is checked out; return it before deleting", current=book.status)

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.BOOK_DELETED,
            details=f"Deleted book: {book.title} by {book.author}",
        )
        db.session.delete(book)

    current_app.logger.info("book deleted: id=%s by=%s", book_id, actor.id)
    return jsonify(success=True), 200


# ---------- ENRICH ----------
@bp.post("/<int:book_id>/enrich")
@login_required
@role_required(*User.Roles.STAFF)
def enrich_book(book_id: int):
    book, result = apply_enrichment(book_id=book_id, actor=current_user())
    return jsonify(book=book.to_dict(), enrichment=result.to_dict(), source=result.source), 200
