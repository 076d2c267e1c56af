import pytest
from fastapi.testclient import TestClient

from api import create_app
from conftest import make_book, make_settings
from digital_library import config
from digital_library.library import Library


@pytest.fixture
def client(lib):
    return TestClient(create_app(lib))


def add_books(lib, count):
    for i in range(count):
        lib.catalog.add_book(make_book(f"b{i:02d}", title=f"Book {i:02d}", isbn=f"{1000000000 + i}"))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["backends"]["books"] == "memory"
    assert body["books"] == 0


def test_list_books_paginates(client, lib):
    add_books(lib, 25)

    response = client.get("/api/books")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 25
    assert body["limit"] == 20
    assert body["offset"] == 0
    assert len(body["items"]) == 20

    body = client.get("/api/books", params={"limit": 10, "offset": 20}).json()
    assert len(body["items"]) == 5
    assert body["offset"] == 20


def test_list_books_search(client, lib):
    lib.catalog.add_book(make_book("b1", "Dune", "Frank Herbert", isbn="9780441013593"))
    lib.catalog.add_book(make_book("b2", "Ulysses", "James Joyce", isbn="9780199535675"))

    body = client.get("/api/books", params={"q": "JOYCE"}).json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["title"] == "Ulysses"
    assert item["publicationYear"] == 1965
    assert "createdAt" in item


def test_invalid_page_size_is_rejected(client):
    assert client.get("/api/books", params={"limit": 0}).status_code == 400


def test_create_book(client, lib):
    payload = {"title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy",
               "publicationYear": 1937, "isbn": "0-261-10221-4"}
    response = client.post("/api/books", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["isbn"] == "0261102214"
    assert body["available"] is True
    assert lib.catalog.get_book(body["id"]).title == "The Hobbit"


@pytest.mark.parametrize("change", [
    {"isbn": "12345"},
    {"publicationYear": 1200},
    {"title": "  "},
])
def test_create_book_validation(client, change):
    payload = {"title": "T", "author": "A", "genre": "Fiction", "publicationYear": 2000, "isbn": "1234567890"}
    payload.update(change)
    assert client.post("/api/books", json=payload).status_code == 400


def test_create_book_missing_field(client):
    assert client.post("/api/books", json={"title": "Only a title"}).status_code == 400


def test_get_and_delete_book(client, lib):
    lib.catalog.add_book(make_book("b1"))

    assert client.get("/api/books/b1").json()["id"] == "b1"
    assert client.delete("/api/books/b1").status_code == 204
    assert client.get("/api/books/b1").status_code == 404
    assert client.delete("/api/books/b1").status_code == 404


def test_users(client):
    response = client.post("/api/users", json={"name": "Ada Lovelace", "email": "ada@example.com"})
    assert response.status_code == 201
    user = response.json()
    assert "registeredAt" in user

    users = client.get("/api/users").json()
    assert [u["id"] for u in users] == [user["id"]]

    assert client.post("/api/users", json={"name": "", "email": "x@example.com"}).status_code == 400


def test_loan_round_trip(client, lib):
    lib.catalog.add_book(make_book("b1", "Dune"))
    user = lib.members.register("Ada", "ada@example.com")

    response = client.post("/api/loans", json={"bookId": "b1", "userId": user.id})
    assert response.status_code == 201
    loan = response.json()
    assert loan["warnings"] == []
    assert loan["returnedAt"] is None
    assert client.get("/api/books/b1").json()["available"] is False

    assert client.post("/api/loans", json={"bookId": "b1", "userId": user.id}).status_code == 409

    listed = client.get("/api/loans").json()
    assert listed[0]["bookTitle"] == "Dune"
    assert listed[0]["userName"] == "Ada"

    returned = client.post(f"/api/loans/{loan['id']}/return")
    assert returned.status_code == 200
    assert returned.json()["returnedAt"]
    assert client.get("/api/books/b1").json()["available"] is True


def test_loan_errors(client, lib):
    lib.catalog.add_book(make_book("b1"))
    assert client.post("/api/loans", json={"bookId": "nope", "userId": "nope"}).status_code == 404
    assert client.post("/api/loans", json={"bookId": "b1", "userId": "nope"}).status_code == 404
    assert client.post("/api/loans/nope/return").status_code == 404


def test_loans_with_unresolved_references(client, lib):
    lib.catalog.add_book(make_book("b1"))
    user = lib.members.register("Ada", "ada@example.com")
    lib.orchestrator.request_loan("b1", user.id)
    lib.catalog.delete_book("b1")
    lib.members.delete_user(user.id)

    loan = client.get("/api/loans").json()[0]
    assert loan["bookTitle"] == "[unknown]"
    assert loan["userName"] == "[unknown]"


def test_audit(client, lib):
    lib.catalog.add_book(make_book("b1", available=False))
    findings = client.get("/api/audit").json()
    assert findings == [{
        "kind": "unavailable_without_loan",
        "bookId": "b1",
        "loanId": None,
        "message": "Book b1 is unavailable but has no open loan",
    }]


def test_static_files(client, lib, tmp_path):
    static = tmp_path / "frontend"
    static.mkdir()
    (static / "index.html").write_text("<h1>Library</h1>", encoding="utf-8")
    (static / "app.js").write_text("console.log('hi')", encoding="utf-8")
    assert lib.settings.static_dir == str(static)

    assert "Library" in client.get("/").text
    assert client.get("/app.js").status_code == 200
    assert client.get("/missing.css").status_code == 404
    assert client.get("/..%2Fsecret.txt").status_code == 400


def test_static_files_follow_library_settings(tmp_path, monkeypatch):
    own = tmp_path / "own"
    own.mkdir()
    (own / "index.html").write_text("<h1>Own front end</h1>", encoding="utf-8")
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    (elsewhere / "index.html").write_text("<h1>Global</h1>", encoding="utf-8")
    monkeypatch.setattr(config.settings, "static_dir", str(elsewhere))

    library = Library.in_memory(make_settings(tmp_path, static_dir=str(own)))
    client = TestClient(create_app(library))

    assert "Own front end" in client.get("/").text
