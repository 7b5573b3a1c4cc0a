"""
Validation and sanitization of submitted catalog forms.

Every form strips its input, runs the rules of every field and collects all
failures, then HTML-escapes every text value so nothing submitted is stored
as live markup.
"""
from datetime import datetime

from markupsafe import escape
from wtforms import Form, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, Optional, Regexp, ValidationError

from data_models import BOOK_INSTANCE_STATUSES


def strip(value):
    return value.strip() if isinstance(value, str) else value


def sanitize(value: str) -> str:
    """HTML-escape a submitted text value."""
    return str(escape(value))


def parse_date(date_str: str):
    """
    Parse a HTML <input type="date"> ('YYYY-MM-DD') into a datetime.date.

    Returns:
         datetime.date or None.
    """
    date_str = (date_str or "").strip()
    if not date_str:
        return None
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def iso_date(message):
    """Validator accepting an empty value or a 'YYYY-MM-DD' date."""

    def _iso_date(form, field):
        try:
            parse_date(field.data)
        except ValueError:
            raise ValidationError(message)

    return _iso_date


def normalize_selection(form_data, key):
    """
    Normalize a multi-valued form field into a list of escaped strings.

    The value may be missing, a single string, or a list of strings
    (``form_data`` can be a plain dict or a werkzeug MultiDict). No selection
    is always an empty list.
    """
    if hasattr(form_data, "getlist"):
        values = form_data.getlist(key)
    else:
        values = form_data.get(key)
    if values is None:
        values = []
    elif isinstance(values, str):
        values = [values]
    return [sanitize(value.strip()) for value in values if value and value.strip()]


class CatalogForm(Form):
    """Base for the catalog forms; every field declares the strip filter."""

    def check(self):
        """
        Validate every field, then escape every text value in place.

        Returns:
            list of (field name, message) pairs in field order, empty if valid.
        """
        self.validate()
        for field in self:
            if isinstance(field.data, str):
                field.data = sanitize(field.data)
        return [(field.name, message) for field in self for message in field.errors]


class BookForm(CatalogForm):
    title = StringField("Title", filters=[strip], validators=[DataRequired("Title cannot be empty")])
    author = StringField("Author", filters=[strip], validators=[DataRequired("Author cannot be empty")])
    summary = TextAreaField("Summary", filters=[strip], validators=[
        DataRequired("Summary cannot be empty"),
        Length(min=10, message="Summary cannot be shorter than 10 characters"),
    ])
    isbn = StringField("ISBN", filters=[strip], validators=[
        DataRequired("ISBN cannot be empty"),
        Length(min=10, message="ISBN cannot be shorter than 10 characters"),
    ])


class GenreForm(CatalogForm):
    name = StringField("Name", filters=[strip], validators=[
        DataRequired("Genre name required"),
        Length(max=100, message="Genre name cannot be longer than 100 characters"),
    ])


class AuthorForm(CatalogForm):
    first_name = StringField("First name", filters=[strip], validators=[
        DataRequired("First name must be specified."),
        Length(max=100, message="First name cannot be longer than 100 characters."),
        Regexp(r"^[A-Za-z0-9]+$", message="First name has non-alphanumeric characters."),
    ])
    family_name = StringField("Family name", filters=[strip], validators=[
        DataRequired("Family name must be specified."),
        Length(max=100, message="Family name cannot be longer than 100 characters."),
        Regexp(r"^[A-Za-z0-9]+$", message="Family name has non-alphanumeric characters."),
    ])
    date_of_birth = StringField("Date of birth", filters=[strip], validators=[
        Optional(), iso_date("Invalid date of birth"),
    ])
    date_of_death = StringField("Date of death", filters=[strip], validators=[
        Optional(), iso_date("Invalid date of death"),
    ])


class BookInstanceForm(CatalogForm):
    book = StringField("Book", filters=[strip], validators=[DataRequired("Book must be specified")])
    imprint = StringField("Imprint", filters=[strip], validators=[DataRequired("Imprint must be specified")])
    due_back = StringField("Date when book available", filters=[strip], validators=[
        Optional(), iso_date("Invalid date"),
    ])
    status = StringField("Status", filters=[strip], default="Maintenance", validators=[
        AnyOf(BOOK_INSTANCE_STATUSES, message="Invalid status"),
    ])
