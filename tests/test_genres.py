import logging

from data_models import Book, Genre


def test_genre_list_is_sorted_by_name(client, library):
    html = client.get("/catalog/genres").get_data(as_text=True)

    assert html.index("Fantasy") < html.index("Poetry") < html.index("Romance")


def test_genre_detail_lists_books(client, library):
    html = client.get(f"/catalog/genre/{library.romance}").get_data(as_text=True)

    assert "Pride and Prejudice" in html
    assert "Emma" not in html


def test_genre_detail_missing_is_404(client, library):
    response = client.get("/catalog/genre/missing")

    assert response.status_code == 404
    assert "Genre not found" in response.get_data(as_text=True)


def test_genre_create(app, client, library):
    response = client.post("/catalog/genre/create", data={"name": "  Science Fiction "})

    assert response.status_code == 302
    with app.app_context():
        genre = Genre.find_one(Genre.name == "Science Fiction")
        assert response.headers["Location"].endswith(genre.url)


def test_genre_create_twice_keeps_one(app, client, library):
    first = client.post("/catalog/genre/create", data={"name": "Horror"})
    second = client.post("/catalog/genre/create", data={"name": "Horror"})

    assert first.headers["Location"] == second.headers["Location"]
    with app.app_context():
        assert Genre.count(Genre.name == "Horror") == 1


def test_genre_create_existing_redirects(app, client, library, caplog):
    caplog.set_level(logging.INFO)
    response = client.post("/catalog/genre/create", data={"name": "Fantasy"})

    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/catalog/genre/{library.fantasy}")
    assert "already exists" in caplog.text
    with app.app_context():
        assert Genre.count() == 3


def test_genre_name_match_is_case_sensitive(app, client, library):
    client.post("/catalog/genre/create", data={"name": "fantasy"})

    with app.app_context():
        assert Genre.count() == 4


def test_genre_create_requires_name(app, client, library):
    response = client.post("/catalog/genre/create", data={"name": "   "})

    assert response.status_code == 200
    assert "Genre name required" in response.get_data(as_text=True)
    with app.app_context():
        assert Genre.count() == 3


def test_genre_name_is_escaped(app, client, library):
    client.post("/catalog/genre/create", data={"name": "Sci-Fi & <Fantasy>"})

    with app.app_context():
        assert Genre.find_one(Genre.name == "Sci-Fi &amp; &lt;Fantasy&gt;") is not None


def test_genre_in_use_is_not_deleted(app, client, library):
    response = client.post(f"/catalog/genre/{library.fantasy}/delete",
                           data={"genreid": library.fantasy})

    assert response.status_code == 200
    html = response.get_data(as_text=True)
    assert "Delete the following books" in html
    assert "Pride and Prejudice" in html
    with app.app_context():
        assert Genre.find_by_id(library.fantasy) is not None


def test_unused_genre_is_deleted(app, client, library):
    response = client.post(f"/catalog/genre/{library.poetry}/delete",
                           data={"genreid": library.poetry})

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/genres")
    with app.app_context():
        assert Genre.find_by_id(library.poetry) is None


def test_genre_delete_missing_redirects_to_list(client, library):
    response = client.get("/catalog/genre/missing/delete")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/genres")


def test_genre_update_form(client, library):
    response = client.get(f"/catalog/genre/{library.poetry}/update")

    assert response.status_code == 200
    assert 'value="Poetry"' in response.get_data(as_text=True)


def test_genre_update_form_missing_is_404(client, library):
    assert client.get("/catalog/genre/missing/update").status_code == 404


def test_genre_rename(app, client, library):
    response = client.post(f"/catalog/genre/{library.poetry}/update", data={"name": "Verse"})

    assert response.headers["Location"].endswith(f"/catalog/genre/{library.poetry}")
    with app.app_context():
        assert Genre.find_by_id(library.poetry).name == "Verse"


def test_genre_rename_to_own_name(app, client, library):
    response = client.post(f"/catalog/genre/{library.poetry}/update", data={"name": "Poetry"})

    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/catalog/genre/{library.poetry}")


def test_genre_rename_onto_another_genre_redirects(app, client, library):
    response = client.post(f"/catalog/genre/{library.poetry}/update", data={"name": "Romance"})

    assert response.headers["Location"].endswith(f"/catalog/genre/{library.romance}")
    with app.app_context():
        assert Genre.find_by_id(library.poetry).name == "Poetry"


def test_genre_rename_invalid(app, client, library):
    response = client.post(f"/catalog/genre/{library.poetry}/update", data={"name": ""})

    assert response.status_code == 200
    assert "Genre name required" in response.get_data(as_text=True)


def test_genre_rename_keeps_books(app, client, library):
    client.post(f"/catalog/genre/{library.romance}/update", data={"name": "Love Stories"})

    with app.app_context():
        books = Book.find_all(Book.genres.any(Genre.id == library.romance))
        assert [book.id for book in books] == [library.pride]


def test_genre_edit_round_trip_does_not_escape_twice(app, client, library):
    client.post(f"/catalog/genre/{library.poetry}/update", data={"name": "Sci-Fi & Fantasy"})

    html = client.get(f"/catalog/genre/{library.poetry}/update").get_data(as_text=True)
    assert 'value="Sci-Fi &amp; Fantasy"' in html
    assert "&amp;amp;" not in html

    # Submitting the form unchanged stores the same value again.
    client.post(f"/catalog/genre/{library.poetry}/update", data={"name": "Sci-Fi & Fantasy"})
    with app.app_context():
        assert Genre.find_by_id(library.poetry).name == "Sci-Fi &amp; Fantasy"
