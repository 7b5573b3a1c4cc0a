"""
ORM models for the local library catalog: Author, Genre, Book and BookInstance.

Each model also carries the small query API the request handlers rely on
(find by id, find all, find one, count, insert, update, delete), so the
handlers never build sessions or statements themselves.
"""
import uuid
from datetime import date

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import load_only, selectinload

db = SQLAlchemy()


BOOK_INSTANCE_STATUSES = ("Available", "Maintenance", "Loaned", "Reserved")


def new_id() -> str:
    """Opaque identifier for a new catalog record."""
    return uuid.uuid4().hex


def format_date(value, pattern="%d/%m/%Y") -> str:
    """Render an optional date for display, '' when missing."""
    return value.strftime(pattern) if value else ""


class CatalogQueries:
    """
    Query helpers shared by every catalog model.

    ``populate`` names relationships to load together with the record, which
    keeps them usable after the session that loaded them has been closed.
    ``projection`` names the only columns to load.
    """

    @classmethod
    def _options(cls, projection=None, populate=()):
        options = [selectinload(getattr(cls, name)) for name in populate]
        if projection:
            options.append(load_only(*(getattr(cls, name) for name in projection)))
        return options

    @classmethod
    def find_by_id(cls, record_id, populate=()):
        if not record_id:
            return None
        return db.session.get(cls, record_id, options=cls._options(populate=populate))

    @classmethod
    def find_all(cls, *criteria, projection=None, populate=(), order_by=None):
        query = cls.query.options(*cls._options(projection, populate))
        if criteria:
            query = query.filter(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        return query.all()

    @classmethod
    def find_one(cls, *criteria):
        return cls.query.filter(*criteria).first()

    @classmethod
    def count(cls, *criteria):
        return cls.query.filter(*criteria).count()

    @classmethod
    def insert(cls, entity):
        db.session.add(entity)
        db.session.commit()
        return entity

    @classmethod
    def update_by_id(cls, record_id, **values):
        """
        Overwrite the given fields of an existing record.

        Returns:
            The updated record, or None if no record has this id.
        """
        entity = cls.find_by_id(record_id)
        if entity is None:
            return None
        for key, value in values.items():
            setattr(entity, key, value)
        db.session.commit()
        return entity

    @classmethod
    def delete_by_id(cls, record_id) -> bool:
        entity = cls.find_by_id(record_id)
        if entity is None:
            return False
        db.session.delete(entity)
        db.session.commit()
        return True


book_genre = db.Table(
    "book_genre",
    db.Column("book_id", db.String(32), db.ForeignKey("books.id"), primary_key=True),
    db.Column("genre_id", db.String(32), db.ForeignKey("genres.id"), primary_key=True),
)


class Author(CatalogQueries, db.Model):
    """
    Author with optional life dates. Books reference authors; an author
    cannot be deleted while any book still does.
    """
    __tablename__ = "authors"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    first_name = db.Column(db.String(100), nullable=False)
    family_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    date_of_death = db.Column(db.Date, nullable=True)

    books = db.relationship("Book", back_populates="author")

    @property
    def name(self):
        return f"{self.family_name}, {self.first_name}"

    @property
    def lifespan(self):
        if self.date_of_birth and self.date_of_death:
            return f"{self.date_of_death.year}-{self.date_of_birth.year}"
        return "-"

    @property
    def url(self):
        return f"/catalog/author/{self.id}"

    @property
    def date_of_birth_formatted(self):
        return format_date(self.date_of_birth)

    @property
    def date_of_death_formatted(self):
        return format_date(self.date_of_death)

    # Values for <input type="date">.
    @property
    def date_of_birth_yyyy_mm_dd(self):
        return format_date(self.date_of_birth, "%Y-%m-%d")

    @property
    def date_of_death_yyyy_mm_dd(self):
        return format_date(self.date_of_death, "%Y-%m-%d")

    def __repr__(self):
        return f"Author(id = {self.id}, name = {self.name})"

    def __str__(self):
        return self.name


class Genre(CatalogQueries, db.Model):
    """
    Genre name. Names are kept unique by the handlers, not by the schema.
    """
    __tablename__ = "genres"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)

    books = db.relationship("Book", secondary=book_genre, back_populates="genres")

    @property
    def url(self):
        return f"/catalog/genre/{self.id}"

    def __repr__(self):
        return f"<Genre id={self.id} name='{self.name}'>"

    def __str__(self):
        return self.name


class Book(CatalogQueries, db.Model):
    """
    Book with its author link and any number of genres.
    """
    __tablename__ = "books"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    summary = db.Column(db.Text, nullable=False)
    isbn = db.Column(db.String(40), nullable=False)

    author_id = db.Column(db.String(32), db.ForeignKey("authors.id"), nullable=False)

    author = db.relationship("Author", back_populates="books")
    genres = db.relationship("Genre", secondary=book_genre, back_populates="books")
    instances = db.relationship("BookInstance", back_populates="book")

    @property
    def url(self):
        return f"/catalog/book/{self.id}"

    def __repr__(self):
        return f"<Book id={self.id} title='{self.title}'>"

    def __str__(self):
        return self.title


class BookInstance(CatalogQueries, db.Model):
    """
    A single borrowable copy of a book.
    """
    __tablename__ = "book_instances"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    book_id = db.Column(db.String(32), db.ForeignKey("books.id"), nullable=False)
    imprint = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="Maintenance")
    due_back = db.Column(db.Date, nullable=False, default=date.today)

    book = db.relationship("Book", back_populates="instances")

    @property
    def url(self):
        return f"/catalog/bookinstance/{self.id}"

    @property
    def due_back_formatted(self):
        return format_date(self.due_back)

    @property
    def due_back_yyyy_mm_dd(self):
        return format_date(self.due_back, "%Y-%m-%d")

    def __repr__(self):
        return f"<BookInstance id={self.id} status='{self.status}'>"
