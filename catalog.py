"""
Catalog pages for books, authors, genres and book copies.

Every kind gets the same set of pages: list, detail, create, update and
delete. Pages that need several independent reads run them through
``parallel`` and render once all of them have finished.
"""
from datetime import date

from flask import Blueprint, abort, current_app, redirect, render_template, request, url_for

from data_models import BOOK_INSTANCE_STATUSES, Author, Book, BookInstance, Genre
from forms import AuthorForm, BookForm, BookInstanceForm, GenreForm, normalize_selection, parse_date
from parallel import parallel

catalog = Blueprint("catalog", __name__, url_prefix="/catalog")


def mark_checked(genres, selected_ids):
    """
    Flag every genre whose id is in ``selected_ids`` as checked, so the
    form can pre-tick it. Returns the same list.
    """
    selected = set(selected_ids)
    for genre in genres:
        genre.checked = genre.id in selected
    return genres


def optional_date(value):
    """Date from a submitted field, None when empty or unparseable."""
    try:
        return parse_date(value)
    except ValueError:
        return None


def all_authors():
    return Author.find_all(order_by=Author.family_name)


def all_genres():
    return Genre.find_all(order_by=Genre.name)


def all_book_titles():
    return Book.find_all(projection=("title",), order_by=Book.title)


def genre_books(genre_id):
    return Book.find_all(Book.genres.any(Genre.id == genre_id), projection=("title", "summary"))


def author_books(author_id):
    return Book.find_all(Book.author_id == author_id, projection=("title", "summary"))


def book_copies(book_id):
    return BookInstance.find_all(BookInstance.book_id == book_id)


def check_reference(errors, field, model, record_id, message):
    """Append an error when the form names a record that does not exist."""
    if record_id and model.find_by_id(record_id) is None:
        errors.append((field, message))
    return errors


@catalog.route("/")
def index():
    """
    Home page with record counts for every kind.
    """
    data = parallel(
        book_count=Book.count,
        book_instance_count=BookInstance.count,
        book_instance_available_count=lambda: BookInstance.count(BookInstance.status == "Available"),
        author_count=Author.count,
        genre_count=Genre.count,
    )
    return render_template("index.html", title="Local Library Home", data=data)


# ---------------------------------------------------------------- Books


@catalog.route("/books")
def book_list():
    books = Book.find_all(projection=("title", "author_id"), populate=("author",), order_by=Book.title)
    return render_template("book_list.html", title="Book List", book_list=books)


@catalog.route("/book/<book_id>")
def book_detail(book_id):
    """
    Show a book together with all of its copies.
    """
    results = parallel(
        book=lambda: Book.find_by_id(book_id, populate=("author", "genres")),
        book_instances=lambda: book_copies(book_id),
    )
    book = results["book"]
    if book is None:
        abort(404, description="Book not found")

    return render_template("book_detail.html", title=book.title, book=book,
                           book_instances=results["book_instances"])


@catalog.route("/book/create")
def book_create_get():
    data = parallel(authors=all_authors, genres=all_genres)
    return render_template("book_form.html", title="Create Book", authors=data["authors"],
                           genres=mark_checked(data["genres"], []))


@catalog.route("/book/create", methods=["POST"])
def book_create_post():
    """
    Create a book. On invalid input the form is shown again with the
    submitted values and the previously ticked genres.
    """
    # --- Normalize, validate and escape ---
    genre_ids = normalize_selection(request.form, "genre")
    form = BookForm(request.form)
    errors = form.check()
    check_reference(errors, "author", Author, form.author.data, "Author not found")

    book = Book(title=form.title.data, author_id=form.author.data,
                summary=form.summary.data, isbn=form.isbn.data)

    if errors:
        data = parallel(authors=all_authors, genres=all_genres)
        return render_template("book_form.html", title="Create Book", authors=data["authors"],
                               genres=mark_checked(data["genres"], genre_ids),
                               book=book, errors=errors)

    # --- Persist ---
    book.genres = Genre.find_all(Genre.id.in_(genre_ids))
    Book.insert(book)
    current_app.logger.info("Created book %s", book.id)
    return redirect(book.url)


@catalog.route("/book/<book_id>/delete")
def book_delete_get(book_id):
    """
    Ask for confirmation, listing the copies that would block the delete.
    An unknown book just leads back to the list.
    """
    results = parallel(
        book=lambda: Book.find_by_id(book_id, populate=("author",)),
        book_instances=lambda: book_copies(book_id),
    )
    if results["book"] is None:
        return redirect(url_for("catalog.book_list"))

    return render_template("book_delete.html", title="Delete Book", book=results["book"],
                           book_instances=results["book_instances"])


@catalog.route("/book/<book_id>/delete", methods=["POST"])
def book_delete_post(book_id):
    """
    Delete a book unless copies of it still exist.
    """
    # The book to delete is named by the form, not by the URL.
    target_id = request.form.get("bookid", "")
    results = parallel(
        book=lambda: Book.find_by_id(target_id, populate=("author",)),
        book_instances=lambda: book_copies(target_id),
    )

    if results["book_instances"]:
        current_app.logger.info("Refused to delete book %s: %d copies remain",
                                target_id, len(results["book_instances"]))
        return render_template("book_delete.html", title="Delete Book", book=results["book"],
                               book_instances=results["book_instances"])

    if Book.delete_by_id(target_id):
        current_app.logger.info("Deleted book %s", target_id)
    return redirect(url_for("catalog.book_list"))


@catalog.route("/book/<book_id>/update")
def book_update_get(book_id):
    """
    Show the book form filled with the stored book, its genres ticked.
    """
    results = parallel(
        book=lambda: Book.find_by_id(book_id, populate=("author", "genres")),
        authors=all_authors,
        genres=all_genres,
    )
    book = results["book"]
    if book is None:
        abort(404, description="Book not found")

    genres = mark_checked(results["genres"], [genre.id for genre in book.genres])
    return render_template("book_form.html", title="Update Book", book=book,
                           authors=results["authors"], genres=genres)


@catalog.route("/book/<book_id>/update", methods=["POST"])
def book_update_post(book_id):
    # --- Normalize, validate and escape ---
    genre_ids = normalize_selection(request.form, "genre")
    form = BookForm(request.form)
    errors = form.check()
    check_reference(errors, "author", Author, form.author.data, "Author not found")

    if errors:
        book = Book(id=book_id, title=form.title.data, author_id=form.author.data,
                    summary=form.summary.data, isbn=form.isbn.data)
        data = parallel(authors=all_authors, genres=all_genres)
        return render_template("book_form.html", title="Update Book", authors=data["authors"],
                               genres=mark_checked(data["genres"], genre_ids),
                               book=book, errors=errors)

    # --- Persist over the existing record ---
    book = Book.update_by_id(
        book_id,
        title=form.title.data,
        author_id=form.author.data,
        summary=form.summary.data,
        isbn=form.isbn.data,
        genres=Genre.find_all(Genre.id.in_(genre_ids)),
    )
    if book is None:
        abort(404, description="Book not found")

    current_app.logger.info("Updated book %s", book.id)
    return redirect(book.url)


# ---------------------------------------------------------------- Genres


@catalog.route("/genres")
def genre_list():
    genres = Genre.find_all(order_by=Genre.name)
    return render_template("genre_list.html", title="Genre List", genre_list=genres)


@catalog.route("/genre/<genre_id>")
def genre_detail(genre_id):
    results = parallel(
        genre=lambda: Genre.find_by_id(genre_id),
        genre_books=lambda: genre_books(genre_id),
    )
    if results["genre"] is None:
        abort(404, description="Genre not found")

    return render_template("genre_detail.html", title="Genre Detail", genre=results["genre"],
                           genre_books=results["genre_books"])


@catalog.route("/genre/create")
def genre_create_get():
    return render_template("genre_form.html", title="Create Genre")


@catalog.route("/genre/create", methods=["POST"])
def genre_create_post():
    """
    Create a genre, or redirect to the genre that already has this name.
    """
    form = GenreForm(request.form)
    errors = form.check()
    genre = Genre(name=form.name.data)

    if errors:
        return render_template("genre_form.html", title="Create Genre", genre=genre, errors=errors)

    # Check-then-insert: concurrent requests with the same name can both pass.
    found = Genre.find_one(Genre.name == genre.name)
    if found is not None:
        current_app.logger.info("Genre %r already exists as %s", genre.name, found.id)
        return redirect(found.url)

    Genre.insert(genre)
    current_app.logger.info("Created genre %s", genre.id)
    return redirect(genre.url)


@catalog.route("/genre/<genre_id>/delete")
def genre_delete_get(genre_id):
    results = parallel(
        genre=lambda: Genre.find_by_id(genre_id),
        genre_books=lambda: genre_books(genre_id),
    )
    if results["genre"] is None:
        return redirect(url_for("catalog.genre_list"))

    return render_template("genre_delete.html", title="Delete Genre", genre=results["genre"],
                           genre_books=results["genre_books"])


@catalog.route("/genre/<genre_id>/delete", methods=["POST"])
def genre_delete_post(genre_id):
    """
    Delete a genre unless books are still filed under it.
    """
    target_id = request.form.get("genreid", "")
    results = parallel(
        genre=lambda: Genre.find_by_id(target_id),
        genre_books=lambda: genre_books(target_id),
    )

    if results["genre_books"]:
        current_app.logger.info("Refused to delete genre %s: %d books remain",
                                target_id, len(results["genre_books"]))
        return render_template("genre_delete.html", title="Delete Genre", genre=results["genre"],
                               genre_books=results["genre_books"])

    if Genre.delete_by_id(target_id):
        current_app.logger.info("Deleted genre %s", target_id)
    return redirect(url_for("catalog.genre_list"))


@catalog.route("/genre/<genre_id>/update")
def genre_update_get(genre_id):
    genre = Genre.find_by_id(genre_id)
    if genre is None:
        abort(404, description="Genre not found")
    return render_template("genre_form.html", title="Update Genre", genre=genre)


@catalog.route("/genre/<genre_id>/update", methods=["POST"])
def genre_update_post(genre_id):
    """
    Rename a genre. If another genre already carries the new name, redirect
    there and leave this one untouched.
    """
    form = GenreForm(request.form)
    errors = form.check()

    if errors:
        genre = Genre(id=genre_id, name=form.name.data)
        return render_template("genre_form.html", title="Update Genre", genre=genre, errors=errors)

    # Same race as on create.
    found = Genre.find_one(Genre.name == form.name.data, Genre.id != genre_id)
    if found is not None:
        current_app.logger.info("Genre %r already exists as %s", form.name.data, found.id)
        return redirect(found.url)

    genre = Genre.update_by_id(genre_id, name=form.name.data)
    if genre is None:
        abort(404, description="Genre not found")

    current_app.logger.info("Updated genre %s", genre.id)
    return redirect(genre.url)


# ---------------------------------------------------------------- Authors


def author_from_form(form, author_id=None):
    return Author(
        id=author_id,
        first_name=form.first_name.data,
        family_name=form.family_name.data,
        date_of_birth=optional_date(form.date_of_birth.data),
        date_of_death=optional_date(form.date_of_death.data),
    )


@catalog.route("/authors")
def author_list():
    authors = Author.find_all(order_by=Author.family_name)
    return render_template("author_list.html", title="Author List", author_list=authors)


@catalog.route("/author/<author_id>")
def author_detail(author_id):
    """
    Show an author and the books they wrote.
    """
    results = parallel(
        author=lambda: Author.find_by_id(author_id),
        author_books=lambda: author_books(author_id),
    )
    if results["author"] is None:
        abort(404, description="Author not found")

    return render_template("author_detail.html", title="Author Detail", author=results["author"],
                           author_books=results["author_books"])


@catalog.route("/author/create")
def author_create_get():
    return render_template("author_form.html", title="Create Author")


@catalog.route("/author/create", methods=["POST"])
def author_create_post():
    form = AuthorForm(request.form)
    errors = form.check()
    author = author_from_form(form)

    if errors:
        return render_template("author_form.html", title="Create Author", author=author,
                               form=form, errors=errors)

    Author.insert(author)
    current_app.logger.info("Created author %s", author.id)
    return redirect(author.url)


@catalog.route("/author/<author_id>/delete")
def author_delete_get(author_id):
    results = parallel(
        author=lambda: Author.find_by_id(author_id),
        author_books=lambda: author_books(author_id),
    )
    if results["author"] is None:
        return redirect(url_for("catalog.author_list"))

    return render_template("author_delete.html", title="Delete Author", author=results["author"],
                           author_books=results["author_books"])


@catalog.route("/author/<author_id>/delete", methods=["POST"])
def author_delete_post(author_id):
    """
    Delete an author unless books still reference them.
    """
    target_id = request.form.get("authorid", "")
    results = parallel(
        author=lambda: Author.find_by_id(target_id),
        author_books=lambda: author_books(target_id),
    )

    if results["author_books"]:
        current_app.logger.info("Refused to delete author %s: %d books remain",
                                target_id, len(results["author_books"]))
        return render_template("author_delete.html", title="Delete Author", author=results["author"],
                               author_books=results["author_books"])

    if Author.delete_by_id(target_id):
        current_app.logger.info("Deleted author %s", target_id)
    return redirect(url_for("catalog.author_list"))


@catalog.route("/author/<author_id>/update")
def author_update_get(author_id):
    author = Author.find_by_id(author_id)
    if author is None:
        abort(404, description="Author not found")
    return render_template("author_form.html", title="Update Author", author=author)


@catalog.route("/author/<author_id>/update", methods=["POST"])
def author_update_post(author_id):
    form = AuthorForm(request.form)
    errors = form.check()

    if errors:
        author = author_from_form(form, author_id)
        return render_template("author_form.html", title="Update Author", author=author,
                               form=form, errors=errors)

    author = Author.update_by_id(
        author_id,
        first_name=form.first_name.data,
        family_name=form.family_name.data,
        date_of_birth=parse_date(form.date_of_birth.data),
        date_of_death=parse_date(form.date_of_death.data),
    )
    if author is None:
        abort(404, description="Author not found")

    current_app.logger.info("Updated author %s", author.id)
    return redirect(author.url)


# ---------------------------------------------------------------- Book copies


def render_bookinstance_form(title, book_list, bookinstance=None, form=None, errors=None):
    """
    Show the copy form. ``form`` is the submitted form on redisplay, so
    its raw values are echoed back as typed.
    """
    return render_template("bookinstance_form.html", title=title, book_list=book_list,
                           statuses=BOOK_INSTANCE_STATUSES, bookinstance=bookinstance,
                           selected_book=bookinstance.book_id if bookinstance else None,
                           form=form, errors=errors)


def bookinstance_from_form(form, bookinstance_id=None):
    return BookInstance(
        id=bookinstance_id,
        book_id=form.book.data,
        imprint=form.imprint.data,
        status=form.status.data,
        due_back=optional_date(form.due_back.data) or date.today(),
    )


@catalog.route("/bookinstances")
def bookinstance_list():
    copies = BookInstance.find_all(populate=("book",))
    return render_template("bookinstance_list.html", title="Book Instance List",
                           bookinstance_list=copies)


@catalog.route("/bookinstance/<bookinstance_id>")
def bookinstance_detail(bookinstance_id):
    bookinstance = BookInstance.find_by_id(bookinstance_id, populate=("book",))
    if bookinstance is None:
        abort(404, description="Book copy not found")
    return render_template("bookinstance_detail.html", title="Copy: " + bookinstance.book.title,
                           bookinstance=bookinstance)


@catalog.route("/bookinstance/create")
def bookinstance_create_get():
    return render_bookinstance_form("Create BookInstance", all_book_titles())


@catalog.route("/bookinstance/create", methods=["POST"])
def bookinstance_create_post():
    form = BookInstanceForm(request.form)
    errors = form.check()
    check_reference(errors, "book", Book, form.book.data, "Book not found")
    bookinstance = bookinstance_from_form(form)

    if errors:
        return render_bookinstance_form("Create BookInstance", all_book_titles(), bookinstance, form, errors)

    BookInstance.insert(bookinstance)
    current_app.logger.info("Created book copy %s", bookinstance.id)
    return redirect(bookinstance.url)


@catalog.route("/bookinstance/<bookinstance_id>/delete")
def bookinstance_delete_get(bookinstance_id):
    bookinstance = BookInstance.find_by_id(bookinstance_id, populate=("book",))
    if bookinstance is None:
        return redirect(url_for("catalog.bookinstance_list"))
    return render_template("bookinstance_delete.html", title="Delete BookInstance",
                           bookinstance=bookinstance)


@catalog.route("/bookinstance/<bookinstance_id>/delete", methods=["POST"])
def bookinstance_delete_post(bookinstance_id):
    # Nothing references a copy, so there is nothing to block on.
    target_id = request.form.get("bookinstanceid", "")
    if BookInstance.delete_by_id(target_id):
        current_app.logger.info("Deleted book copy %s", target_id)
    return redirect(url_for("catalog.bookinstance_list"))


@catalog.route("/bookinstance/<bookinstance_id>/update")
def bookinstance_update_get(bookinstance_id):
    results = parallel(
        bookinstance=lambda: BookInstance.find_by_id(bookinstance_id, populate=("book",)),
        books=all_book_titles,
    )
    if results["bookinstance"] is None:
        abort(404, description="Book copy not found")
    return render_bookinstance_form("Update BookInstance", results["books"], results["bookinstance"])


@catalog.route("/bookinstance/<bookinstance_id>/update", methods=["POST"])
def bookinstance_update_post(bookinstance_id):
    form = BookInstanceForm(request.form)
    errors = form.check()
    check_reference(errors, "book", Book, form.book.data, "Book not found")

    if errors:
        bookinstance = bookinstance_from_form(form, bookinstance_id)
        return render_bookinstance_form("Update BookInstance", all_book_titles(), bookinstance, form, errors)

    bookinstance = BookInstance.update_by_id(
        bookinstance_id,
        book_id=form.book.data,
        imprint=form.imprint.data,
        status=form.status.data,
        due_back=parse_date(form.due_back.data) or date.today(),
    )
    if bookinstance is None:
        abort(404, description="Book copy not found")

    current_app.logger.info("Updated book copy %s", bookinstance.id)
    return redirect(bookinstance.url)
