from datetime import date
from types import SimpleNamespace

import pytest

from app import create_app
from data_models import db, Author, Book, BookInstance, Genre


@pytest.fixture
def app(tmp_path):
    # Each test gets its own database file
    db_file = tmp_path / "library.sqlite"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}",
    })
    yield app
    with app.app_context():
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def library(app):
    """
    A small catalog: one author, three genres, two books and one copy.

    "Pride and Prejudice" is filed under Fantasy and Romance and has one
    available copy; "Emma" has no genres and no copies.
    """
    with app.app_context():
        austen = Author(first_name="Jane", family_name="Austen",
                        date_of_birth=date(1775, 12, 16), date_of_death=date(1817, 7, 18))
        fantasy = Genre(name="Fantasy")
        poetry = Genre(name="Poetry")
        romance = Genre(name="Romance")
        pride = Book(title="Pride and Prejudice", summary="A novel of manners and marriage.",
                     isbn="9780141439518", author=austen, genres=[fantasy, romance])
        emma = Book(title="Emma", summary="A comic novel about matchmaking.",
                    isbn="9780141439587", author=austen)
        copy = BookInstance(book=pride, imprint="Penguin Classics, 2003", status="Available")

        db.session.add_all([austen, fantasy, poetry, romance, pride, emma, copy])
        db.session.commit()

        return SimpleNamespace(
            austen=austen.id,
            fantasy=fantasy.id,
            poetry=poetry.id,
            romance=romance.id,
            pride=pride.id,
            emma=emma.id,
            copy=copy.id,
        )
