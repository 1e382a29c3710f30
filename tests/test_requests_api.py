from librarium.extensions import db
from librarium.models import AuditLog, Book, BorrowRequest, Checkout, User
from tests.conftest import ensure_user, login_session, make_book


def test_member_can_request_available_book(client):
    login_session(client, user_id=1)
    book = make_book()

    r = client.post("/requests/", json={"book_id": book.id})
    assert r.status_code == 201
    data = r.get_json()
    assert data["status"] == "PENDING"
    assert data["book"]["status"] == "REQUESTED"
    assert data["user"]["id"] == 1

    entry = AuditLog.query.one()
    assert entry.action == "BORROW_REQUESTED"
    assert entry.endpoint == "requests.create_request"
    assert entry.method == "POST"
    assert entry.path == "/requests/"


def test_request_requires_book_id(client):
    login_session(client, user_id=1)

    r = client.post("/requests/", json={})
    assert r.status_code == 400
    assert r.get_json()["error"] == "missing_fields"

    r = client.post("/requests/", json={"book_id": "abc"})
    assert r.status_code == 400


def test_request_unknown_book_is_404(client):
    login_session(client, user_id=1)
    r = client.post("/requests/", json={"book_id": 777})
    assert r.status_code == 404
    assert r.get_json()["error"] == "not_found"


def test_second_user_cannot_request_requested_book(client):
    book = make_book()

    login_session(client, user_id=1)
    assert client.post("/requests/", json={"book_id": book.id}).status_code == 201

    login_session(client, user_id=2)
    r = client.post("/requests/", json={"book_id": book.id})
    assert r.status_code == 409
    data = r.get_json()
    assert data["error"] == "invalid_state"
    assert data["current"] == "REQUESTED"


def test_member_cannot_resolve_requests(client):
    book = make_book()
    login_session(client, user_id=1)
    req_id = client.post("/requests/", json={"book_id": book.id}).get_json()["id"]

    r = client.put(f"/requests/{req_id}", json={"action": "approve"})
    assert r.status_code == 403
    assert db.session.get(BorrowRequest, req_id).status == "PENDING"


def test_librarian_approves_with_due_days(client):
    book = make_book()
    login_session(client, user_id=1)
    req_id = client.post("/requests/", json={"book_id": book.id}).get_json()["id"]

    login_session(client, user_id=2, role=User.Roles.LIBRARIAN)
    r = client.put(f"/requests/{req_id}", json={"action": "approve", "due_days": 7})
    assert r.status_code == 200
    data = r.get_json()
    assert data["message"] == "approved"
    assert data["status"] == "APPROVED"
    assert data["resolved_by"]["id"] == 2
    assert data["due_date"] is not None

    assert db.session.get(Book, book.id).status == "CHECKED_OUT"
    assert Checkout.query.filter_by(borrow_request_id=req_id).count() == 1


def test_resolve_validates_input(client):
    book = make_book()
    login_session(client, user_id=1)
    req_id = client.post("/requests/", json={"book_id": book.id}).get_json()["id"]

    login_session(client, user_id=2, role=User.Roles.ADMIN)
    r = client.put(f"/requests/{req_id}", json={"action": "maybe"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"

    r = client.put(f"/requests/{req_id}", json={"action": "approve", "due_days": -1})
    assert r.status_code == 400

    assert client.put("/requests/999", json={"action": "deny"}).status_code == 404


def test_resolving_twice_is_409(client):
    book = make_book()
    login_session(client, user_id=1)
    req_id = client.post("/requests/", json={"book_id": book.id}).get_json()["id"]

    login_session(client, user_id=2, role=User.Roles.LIBRARIAN)
    r = client.put(f"/requests/{req_id}", json={"action": "deny"})
    assert r.status_code == 200
    assert r.get_json()["status"] == "DENIED"
    assert db.session.get(Book, book.id).status == "AVAILABLE"

    r = client.put(f"/requests/{req_id}", json={"action": "approve"})
    assert r.status_code == 409
    assert r.get_json()["error"] == "already_resolved"


def test_members_only_see_their_own_requests(client):
    b1 = make_book(title="Dune")
    b2 = make_book(title="Emma", author="Jane Austen")

    login_session(client, user_id=1)
    client.post("/requests/", json={"book_id": b1.id})
    login_session(client, user_id=2)
    client.post("/requests/", json={"book_id": b2.id})

    items = client.get("/requests/").get_json()["items"]
    assert [i["book"]["title"] for i in items] == ["Emma"]

    login_session(client, user_id=3, role=User.Roles.LIBRARIAN)
    items = client.get("/requests/?status=pending").get_json()["items"]
    assert len(items) == 2

    assert client.get("/requests/?status=lost").status_code == 400
