"""
Borrow lifecycle: the only code allowed to move Book.status,
BorrowRequest.status and Checkout.returned_at.

    AVAILABLE --request--> REQUESTED --approve--> CHECKED_OUT --return--> AVAILABLE
    REQUESTED --deny (no other pending)--> AVAILABLE
    REQUESTED --deny (others pending)--> REQUESTED

Each operation takes the acting user explicitly, touches one book, one
request and at most one checkout, writes one audit entry and commits all of
it in a single transaction.
"""
from __future__ import annotations

import logging
from datetime import timedelta

from flask import current_app

from librarium.errors import (
    AlreadyCheckedOut,
    AlreadyResolved,
    AlreadyReturned,
    DuplicateRequest,
    InvalidState,
    NotFound,
)
from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, Checkout, User
from librarium.services.audit import record_audit
from librarium.services.transaction import atomic
from librarium.utils import utcnow

logger = logging.getLogger(__name__)

APPROVE = "approve"
DENY = "deny"
ACTIONS = (APPROVE, DENY)


def _get_or_404(model, ident, label: str):
    obj = db.session.get(model, ident)
    if obj is None:
        raise NotFound(f"{label} {ident} not found")
    return obj


def _has_pending(book_id: int, *, user_id: int | None = None, exclude_id: int | None = None) -> bool:
    q = BorrowRequest.query.filter(
        BorrowRequest.book_id == book_id,
        BorrowRequest.status == BorrowRequest.Status.PENDING,
    )
    if user_id is not None:
        q = q.filter(BorrowRequest.user_id == user_id)
    if exclude_id is not None:
        q = q.filter(BorrowRequest.id != exclude_id)
    return q.first() is not None


def _open_checkout(book_id: int, *, user_id: int | None = None) -> Checkout | None:
    q = Checkout.query.filter(Checkout.book_id == book_id, Checkout.returned_at.is_(None))
    if user_id is not None:
        q = q.filter(Checkout.user_id == user_id)
    return q.first()


def default_due_days() -> int:
    return int(current_app.config.get("DEFAULT_DUE_DAYS", 14))


def _validate_due_days(due_days) -> int:
    if isinstance(due_days, bool):
        raise ValueError("due_days must be an integer")
    # missing or 0 means "use the library default"
    if due_days is None or due_days == 0:
        return default_due_days()
    if not isinstance(due_days, int):
        raise ValueError("due_days must be an integer")
    max_days = int(current_app.config.get("MAX_DUE_DAYS", 90))
    if due_days < 1 or due_days > max_days:
        raise ValueError(f"due_days must be between 1 and {max_days}")
    return due_days


def submit_request(*, book_id: int, actor: User) -> BorrowRequest:
    with atomic("submit_request"):
        book = _get_or_404(Book, book_id, "book")

        if book.status != Book.Status.AVAILABLE:
            raise InvalidState(
                "Book is not available for borrowing",
                current=book.status,
                allowed=[Book.Status.AVAILABLE],
            )

        if _has_pending(book.id, user_id=actor.id):
            raise DuplicateRequest("You already have a pending request for this book")

        if _open_checkout(book.id, user_id=actor.id) is not None:
            raise AlreadyCheckedOut("You already have this book checked out")

        req = BorrowRequest(
            book_id=book.id,
            user_id=actor.id,
            status=BorrowRequest.Status.PENDING,
            requested_at=utcnow(),
        )
        db.session.add(req)
        book.status = Book.Status.REQUESTED

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.BORROW_REQUESTED,
            details=f"Requested to borrow: {book.title}",
        )

    logger.info("borrow requested: request=%s book=%s user=%s", req.id, book_id, actor.id)
    return req


def resolve_request(*, request_id: int, action: str, actor: User, due_days: int | None = None) -> BorrowRequest:
    if action not in ACTIONS:
        raise ValueError("Invalid action. Must be 'approve' or 'deny'")
    if action == APPROVE:
        due_days = _validate_due_days(due_days)

    with atomic(f"resolve_request[{action}]"):
        req = _get_or_404(BorrowRequest, request_id, "request")

        if req.status != BorrowRequest.Status.PENDING:
            raise AlreadyResolved("Request is already resolved", current=req.status)

        book = req.book
        now = utcnow()

        if action == APPROVE:
            if _open_checkout(book.id) is not None:
                raise InvalidState("Book already has an open checkout", current=book.status)

            due_date = now + timedelta(days=due_days)

            req.status = BorrowRequest.Status.APPROVED
            req.resolved_at = now
            req.resolved_by_id = actor.id
            req.due_date = due_date

            db.session.add(
                Checkout(
                    book_id=book.id,
                    user_id=req.user_id,
                    borrow_request_id=req.id,
                    checked_out_at=now,
                    due_date=due_date,
                )
            )
            book.status = Book.Status.CHECKED_OUT

            record_audit(
                actor_id=actor.id,
                book_id=book.id,
                action=AuditLog.Actions.BORROW_APPROVED,
                details=f"Approved borrow for: {book.title}. Due: {due_date.isoformat()}Z",
            )
        else:
            req.status = BorrowRequest.Status.DENIED
            req.resolved_at = now
            req.resolved_by_id = actor.id

            # only relax the flag; another pending request is never auto-approved
            if not _has_pending(book.id, exclude_id=req.id) and book.status == Book.Status.REQUESTED:
                book.status = Book.Status.AVAILABLE

            record_audit(
                actor_id=actor.id,
                book_id=book.id,
                action=AuditLog.Actions.BORROW_DENIED,
                details=f"Denied borrow for: {book.title}",
            )

    logger.info(
        "borrow request resolved: request=%s action=%s book=%s by=%s book_status=%s",
        req.id, action, req.book_id, actor.id, book.status,
    )
    return req


def return_book(*, checkout_id: int, actor: User) -> Checkout:
    with atomic("return_book"):
        checkout = _get_or_404(Checkout, checkout_id, "checkout")

        if checkout.returned_at is not None:
            raise AlreadyReturned("Book already returned", returned_at=checkout.returned_at.isoformat())

        book = checkout.book
        checkout.returned_at = utcnow()
        # at most one open checkout exists per book, so this clears it outright
        book.status = Book.Status.AVAILABLE

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.RETURNED,
            details=f"Returned: {book.title}",
        )

    logger.info("book returned: checkout=%s book=%s by=%s", checkout.id, checkout.book_id, actor.id)
    return checkout
