from werkzeug.security import generate_password_hash, check_password_hash

from librarium.extensions import db
from librarium.utils import utcnow, isoformat


class User(db.Model):
    __tablename__ = "users"

    class Roles:
        MEMBER = "MEMBER"
        LIBRARIAN = "LIBRARIAN"
        ADMIN = "ADMIN"

        ALL = (MEMBER, LIBRARIAN, ADMIN)
        STAFF = (LIBRARIAN, ADMIN)

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120))

    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), nullable=False, default=Roles.MEMBER)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_blocked = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def is_staff(self) -> bool:
        return self.role in self.Roles.STAFF

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "is_blocked": self.is_blocked,
            "created_at": isoformat(self.created_at),
        }

    def to_brief(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}
