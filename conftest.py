import pytest

from digital_library.book import Book, Genre
from digital_library.config import Settings
from digital_library.library import Library
from digital_library.utils.ui_helpers import OUTPUT_MODE_ENV


def make_settings(tmp_path, **overrides) -> Settings:
    """Settings rooted in a temporary data directory, memory backends unless overridden."""
    values = dict(
        book_backend="memory",
        user_backend="memory",
        loan_backend="memory",
        data_dir=str(tmp_path),
        books_csv_file=None,
        books_json_file=None,
        books_db_file=None,
        users_json_file=None,
        loans_json_file=None,
        seed_file=str(tmp_path / "seed_books.json"),
        static_dir=str(tmp_path / "frontend"),
        default_loan_days=14,
    )
    values.update(overrides)
    return Settings(**values)


def make_book(book_id="b1", title="Dune", author="Frank Herbert", genre=Genre.SCIENCE_FICTION,
              year=1965, isbn="9780441013593", available=True) -> Book:
    return Book(book_id, title, author, genre, year, isbn, available=available)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def lib(settings):
    # Every test gets its own in-memory library; the CLI picks it up too
    from main import LibraryManager

    library = Library.in_memory(settings)
    LibraryManager.set_instance(library)
    yield library
    LibraryManager.set_instance(None)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)
