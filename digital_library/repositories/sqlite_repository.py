import logging
import sqlite3
from typing import List, Optional

from digital_library.book import Book
from digital_library.database import get_db_connection, initialize_database
from digital_library.errors import StorageError
from digital_library.repositories.base import BookRepository
from digital_library.utils.timestamps import format_timestamp, parse_timestamp_or_none

logger = logging.getLogger(__name__)

_UPSERT = (
    "INSERT OR REPLACE INTO books (id, title, author, genre, publication_year, isbn, available, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
)


def _book_params(book: Book) -> tuple:
    return (
        book.id,
        book.title,
        book.author,
        book.genre.value,
        book.publication_year,
        book.isbn,
        1 if book.available else 0,
        format_timestamp(book.created_at),
    )


def _row_to_book(row: sqlite3.Row) -> Book:
    return Book.restore(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        genre=row["genre"],
        publication_year=row["publication_year"],
        isbn=row["isbn"],
        available=bool(row["available"]),
        created_at=parse_timestamp_or_none(row["created_at"]),
    )


class SqliteBookRepository(BookRepository):
    """Catalog in a single-file SQLite database, table ``books`` keyed by id."""

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file
        try:
            initialize_database(db_file)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open database {db_file}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        try:
            return get_db_connection(self.db_file)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open database {self.db_file}: {e}") from e

    def save(self, book: Book) -> Book:
        conn = self._connect()
        try:
            conn.execute(_UPSERT, _book_params(book))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Saving book {book.id} failed: {e}") from e
        finally:
            conn.close()
        return book

    def save_all(self, books: List[Book]) -> None:
        """All or nothing: one failing row rolls back the whole batch."""
        conn = self._connect()
        try:
            with conn:
                conn.executemany(_UPSERT, [_book_params(book) for book in books])
            logger.debug("Saved %d books to %s", len(books), self.db_file)
        except sqlite3.Error as e:
            raise StorageError(f"Bulk save of {len(books)} books failed: {e}") from e
        finally:
            conn.close()

    def find_by_id(self, book_id: str) -> Optional[Book]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Reading book {book_id} failed: {e}") from e
        finally:
            conn.close()
        return _row_to_book(row) if row else None

    def find_all(self) -> List[Book]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT * FROM books ORDER BY created_at, id").fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Reading the catalog failed: {e}") from e
        finally:
            conn.close()
        return [_row_to_book(row) for row in rows]

    def delete_by_id(self, book_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StorageError(f"Deleting book {book_id} failed: {e}") from e
        finally:
            conn.close()

    def __repr__(self) -> str:
        return f"SqliteBookRepository({self.db_file!r})"
