from librarium.extensions import db
from librarium.models import User
from tests.conftest import ensure_user


def test_register_creates_member_and_session(client):
    r = client.post("/auth/register", json={
        "email": "Reader@Example.com",
        "username": "reader",
        "password": "longenough",
        "role": "ADMIN",
    })
    assert r.status_code == 201
    data = r.get_json()
    assert data["email"] == "reader@example.com"
    assert data["role"] == "MEMBER"

    me = client.get("/auth/me").get_json()
    assert me["authenticated"] is True
    assert me["username"] == "reader"
    assert client.get("/books/").status_code == 200


def test_register_validation(client):
    assert client.post("/auth/register", json={"email": "a@b.c"}).get_json()["error"] == "missing_fields"

    r = client.post("/auth/register", json={"email": "a@b.c", "username": "a", "password": "short"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "weak_password"

    ensure_user(1)
    r = client.post("/auth/register", json={"email": "user1@test.local", "username": "x", "password": "longenough"})
    assert r.status_code == 409
    assert r.get_json()["error"] == "user_exists"


def test_login_and_logout(client):
    ensure_user(1, role=User.Roles.LIBRARIAN)

    r = client.post("/auth/login", json={"email": "user1@test.local", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "invalid_credentials"

    r = client.post("/auth/login", json={"email": "USER1@test.local", "password": "test1234"})
    assert r.status_code == 200
    assert r.get_json()["role"] == "LIBRARIAN"
    assert client.get("/admin/overdue").status_code == 200

    assert client.post("/auth/logout").get_json() == {"message": "logged_out"}
    assert client.get("/admin/overdue").status_code == 401


def test_blocked_user_cannot_login(client):
    ensure_user(3, is_blocked=True)
    r = client.post("/auth/login", json={"email": "user3@test.local", "password": "test1234"})
    assert r.status_code == 403
    assert r.get_json()["error"] == "user_blocked"

    user = db.session.get(User, 3)
    user.is_blocked = False
    user.is_active = False
    db.session.commit()
    assert client.post("/auth/login", json={"email": "user3@test.local", "password": "test1234"}).status_code == 403
