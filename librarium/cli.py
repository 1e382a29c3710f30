import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Book, User

SEED_USERS = [
    {"email": "admin@library.local", "username": "admin", "name": "Library Admin", "role": User.Roles.ADMIN},
    {"email": "librarian@library.local", "username": "librarian", "name": "Head Librarian", "role": User.Roles.LIBRARIAN},
    {"email": "member@library.local", "username": "member", "name": "Avid Reader", "role": User.Roles.MEMBER},
]

SEED_BOOKS = [
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "genre": "Fiction",
        "tags": ["classic", "american-literature", "social-justice"],
        "isbn": "978-0-06-112008-4",
        "difficulty": "Moderate",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Science Fiction",
        "tags": ["dystopian", "classic", "political"],
        "isbn": "978-0-452-28423-4",
        "difficulty": "Moderate",
    },
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "tags": ["classic", "american-literature", "jazz-age"],
        "isbn": "978-0-7432-7356-5",
        "difficulty": "Moderate",
    },
    {
        "title": "Sapiens: A Brief History of Humankind",
        "author": "Yuval Noah Harari",
        "genre": "Non-Fiction",
        "tags": ["history", "anthropology", "science"],
        "isbn": "978-0-06-231609-7",
        "difficulty": "Moderate",
    },
    {
        "title": "The Pragmatic Programmer",
        "author": "David Thomas & Andrew Hunt",
        "genre": "Technology",
        "tags": ["programming", "software-engineering", "career"],
        "isbn": "978-0-13-595705-9",
        "difficulty": "Advanced",
    },
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "tags": ["sci-fi", "epic", "ecology", "politics"],
        "isbn": "978-0-441-17271-9",
        "difficulty": "Advanced",
    },
]


def seed(password: str) -> tuple[int, int]:
    """Insert the starter users and catalog; rows that already exist are skipped."""
    users_added = 0
    for entry in SEED_USERS:
        if User.query.filter_by(email=entry["email"]).first():
            continue
        user = User(**entry)
        user.set_password(password)
        db.session.add(user)
        users_added += 1

    books_added = 0
    for entry in SEED_BOOKS:
        if Book.query.filter_by(isbn=entry["isbn"]).first():
            continue
        db.session.add(Book(status=Book.Status.AVAILABLE, **entry))
        books_added += 1

    db.session.commit()
    return users_added, books_added


@click.command("seed-db")
@click.option("--password", default="changeme123", show_default=True, help="Password for the seeded accounts.")
@with_appcontext
def seed_db_command(password):
    """Create tables and load the starter users and catalog."""
    db.create_all()
    users_added, books_added = seed(password)
    current_app.logger.info("seed-db: %s users, %s books added", users_added, books_added)
    click.echo(f"Seeded {users_added} users and {books_added} books.")
