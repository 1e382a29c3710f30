from datetime import timedelta

import pytest

from librarium.errors import AlreadyCheckedOut, DuplicateRequest, InvalidState, NotFound
from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, Checkout
from librarium.services import lifecycle
from librarium.utils import utcnow
from tests.conftest import ensure_user, make_book


def test_submit_request_marks_book_requested(app):
    member = ensure_user(1)
    book = make_book(title="Dune")

    req = lifecycle.submit_request(book_id=book.id, actor=member)

    assert req.status == BorrowRequest.Status.PENDING
    assert req.user_id == 1
    assert req.resolved_at is None
    assert req.due_date is None
    assert db.session.get(Book, book.id).status == Book.Status.REQUESTED

    logs = AuditLog.query.all()
    assert len(logs) == 1
    assert logs[0].action == AuditLog.Actions.BORROW_REQUESTED
    assert logs[0].user_id == 1
    assert logs[0].book_id == book.id
    assert logs[0].details == "Requested to borrow: Dune"


@pytest.mark.parametrize("status", [Book.Status.REQUESTED, Book.Status.CHECKED_OUT])
def test_submit_on_unavailable_book_changes_nothing(app, status):
    member = ensure_user(1)
    book = make_book(status=status)

    with pytest.raises(InvalidState):
        lifecycle.submit_request(book_id=book.id, actor=member)

    assert db.session.get(Book, book.id).status == status
    assert BorrowRequest.query.count() == 0
    assert AuditLog.query.count() == 0


def test_submit_unknown_book(app):
    member = ensure_user(1)
    with pytest.raises(NotFound):
        lifecycle.submit_request(book_id=404, actor=member)


def test_submit_rejects_second_pending_request_from_same_user(app):
    member = ensure_user(1)
    book = make_book()
    # legacy row: pending request left on an available book
    db.session.add(BorrowRequest(book_id=book.id, user_id=member.id, status=BorrowRequest.Status.PENDING))
    db.session.commit()

    with pytest.raises(DuplicateRequest):
        lifecycle.submit_request(book_id=book.id, actor=member)

    assert BorrowRequest.query.count() == 1
    assert db.session.get(Book, book.id).status == Book.Status.AVAILABLE
    assert AuditLog.query.count() == 0


def test_submit_rejects_user_already_holding_the_book(app):
    member = ensure_user(1)
    book = make_book()
    db.session.add(Checkout(book_id=book.id, user_id=member.id, due_date=utcnow() + timedelta(days=3)))
    db.session.commit()

    with pytest.raises(AlreadyCheckedOut):
        lifecycle.submit_request(book_id=book.id, actor=member)

    assert BorrowRequest.query.count() == 0
    assert AuditLog.query.count() == 0
