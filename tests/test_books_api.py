from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, User
from tests.conftest import login_session, make_book


def test_create_book_requires_fields(client):
    login_session(client, user_id=1, role=User.Roles.LIBRARIAN)

    r = client.post("/books/", json={"title": "", "author": ""})
    assert r.status_code == 400
    assert r.get_json()["error"] == "missing_fields"


def test_staff_create_book_starts_available(client):
    login_session(client, user_id=7, role=User.Roles.LIBRARIAN)

    r = client.post("/books/", json={
        "title": "Emma",
        "author": "Jane Austen",
        "genre": "Fiction",
        "tags": ["classic", "romance"],
        "isbn": "978-0-14-143958-7",
    })
    assert r.status_code == 201
    data = r.get_json()
    assert data["status"] == "AVAILABLE"
    assert data["tags"] == ["classic", "romance"]

    entry = AuditLog.query.one()
    assert entry.action == "BOOK_CREATED"
    assert entry.user_id == 7
    assert entry.details == "Created book: Emma by Jane Austen"


def test_status_cannot_be_set_through_catalog(client):
    login_session(client, user_id=7, role=User.Roles.ADMIN)

    r = client.post("/books/", json={"title": "Emma", "author": "Jane Austen", "status": "CHECKED_OUT"})
    assert r.status_code == 400

    book = make_book()
    r = client.put(f"/books/{book.id}", json={"title": "Dune", "author": "F. Herbert", "status": "AVAILABLE"})
    assert r.status_code == 400


def test_member_cannot_create_book(client):
    login_session(client, user_id=1)
    r = client.post("/books/", json={"title": "Emma", "author": "Jane Austen"})
    assert r.status_code == 403
    assert r.get_json()["error"] == "forbidden"


def test_books_search_filters(client):
    login_session(client, user_id=1)
    make_book(title="Dune", author="Frank Herbert", genre="Science Fiction", tags=["sci-fi", "epic"])
    make_book(title="Dune Messiah", author="Frank Herbert", genre="Science Fiction",
              tags=["sci-fi"], status=Book.Status.CHECKED_OUT)
    make_book(title="Emma", author="Jane Austen", genre="Fiction", tags=["classic"], isbn="978-0-14-143958-7")

    res = client.get("/books/?search=dune&status=available")
    data = res.get_json()
    assert res.status_code == 200
    assert data["total"] == 1
    assert data["items"][0]["title"] == "Dune"

    assert client.get("/books/?tag=sci-fi").get_json()["total"] == 2
    assert client.get("/books/?tag=epic").get_json()["total"] == 1
    assert client.get("/books/?genre=fiction").get_json()["total"] == 1
    assert client.get("/books/?search=143958").get_json()["items"][0]["title"] == "Emma"

    page = client.get("/books/?limit=2&page=2").get_json()
    assert page["total"] == 3
    assert page["pages"] == 2
    assert len(page["items"]) == 1

    assert client.get("/books/?status=LOST").status_code == 400


def test_book_detail_lists_pending_requests(client):
    book = make_book()
    login_session(client, user_id=1)
    client.post("/requests/", json={"book_id": book.id})

    data = client.get(f"/books/{book.id}").get_json()
    assert data["status"] == "REQUESTED"
    assert [r["user"]["id"] for r in data["pending_requests"]] == [1]
    assert data["checkouts"] == []

    assert client.get("/books/9999").status_code == 404


def test_update_book_keeps_status(client):
    book = make_book(status=Book.Status.REQUESTED)
    login_session(client, user_id=7, role=User.Roles.LIBRARIAN)

    r = client.put(f"/books/{book.id}", json={"title": "Dune", "author": "Frank Herbert", "genre": "SF"})
    assert r.status_code == 200
    data = r.get_json()
    assert data["genre"] == "SF"
    assert data["status"] == "REQUESTED"
    assert AuditLog.query.one().action == "BOOK_UPDATED"


def test_only_admin_deletes_books(client):
    book = make_book()

    login_session(client, user_id=7, role=User.Roles.LIBRARIAN)
    assert client.delete(f"/books/{book.id}").status_code == 403

    login_session(client, user_id=8, role=User.Roles.ADMIN)
    r = client.delete(f"/books/{book.id}")
    assert r.status_code == 200
    assert db.session.get(Book, book.id) is None

    entry = AuditLog.query.one()
    assert entry.action == "BOOK_DELETED"
    assert entry.details == "Deleted book: Dune by Frank Herbert"


def test_delete_cascades_requests(client):
    book = make_book()
    login_session(client, user_id=1)
    client.post("/requests/", json={"book_id": book.id})

    login_session(client, user_id=8, role=User.Roles.ADMIN)
    assert client.delete(f"/books/{book.id}").status_code == 200
    assert BorrowRequest.query.count() == 0


def test_checked_out_book_cannot_be_deleted(client):
    book = make_book(status=Book.Status.CHECKED_OUT)
    login_session(client, user_id=8, role=User.Roles.ADMIN)

    r = client.delete(f"/books/{book.id}")
    assert r.status_code == 409
    assert r.get_json()["error"] == "invalid_state"
    assert db.session.get(Book, book.id) is not None


def test_deleted_book_history_keeps_text_but_drops_book_id(client):
    book = make_book()
    login_session(client, user_id=8, role=User.Roles.ADMIN)
    client.post("/requests/", json={"book_id": book.id})

    assert client.delete(f"/books/{book.id}").status_code == 200

    rows = [(a.action, a.book_id) for a in AuditLog.query.order_by(AuditLog.id).all()]
    assert rows == [("BORROW_REQUESTED", None), ("BOOK_DELETED", None)]

    # a new book must not inherit the old history
    newcomer = make_book(title="Emma", author="Jane Austen")
    assert client.get(f"/admin/audit?book_id={newcomer.id}").get_json()["items"] == []
