import csv
import logging
from typing import Dict, List, Optional

from digital_library.book import Book, Genre
from digital_library.errors import StorageError, ValidationError
from digital_library.repositories.base import BookRepository
from digital_library.repositories.file_store import FileBackedRepository, atomic_write
from digital_library.utils.timestamps import format_timestamp, now, parse_timestamp
from digital_library.utils.validators import TextValidator

logger = logging.getLogger(__name__)

# Fixed column order of the catalog file, no header line
FIELDS = ("id", "title", "author", "genre", "publication_year", "isbn", "available", "created_at")


class CsvBookRepository(FileBackedRepository, BookRepository):
    """Catalog kept in a delimited text file, one book per line.

    Malformed lines are skipped with a warning so one bad record never hides
    the rest of the catalog. A missing file is an empty catalog.
    """

    def __init__(self, path: str, delimiter: str = ",") -> None:
        super().__init__(path)
        self.delimiter = delimiter

    # ------------------------- Reading ------------------------- #
    def _parse_row(self, row: List[str], line_no: int) -> Optional[Book]:
        if len(row) < len(FIELDS):
            logger.warning("%s:%d: expected %d fields, got %d; line skipped",
                           self.path, line_no, len(FIELDS), len(row))
            return None
        book_id, title, author, genre, year, isbn, available, created_at = (v.strip() for v in row[:len(FIELDS)])
        if not title:
            logger.warning("%s:%d: empty title; line skipped", self.path, line_no)
            return None
        try:
            year_value = int(year)
        except ValueError:
            logger.warning("%s:%d: unparsable year %r; line skipped", self.path, line_no, year)
            return None
        try:
            added = parse_timestamp(created_at) or now()
        except ValueError:
            logger.warning("%s:%d: unparsable timestamp %r; line skipped", self.path, line_no, created_at)
            return None
        try:
            return Book(book_id, title, author, Genre.from_display_name(genre), year_value, isbn,
                        available=available.lower() == "true", created_at=added)
        except ValidationError as e:
            logger.warning("%s:%d: %s; line skipped", self.path, line_no, e)
            return None

    def _read(self) -> Dict[str, Book]:
        books: Dict[str, Book] = {}
        if not self.exists():
            return books
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as fh:
                for line_no, row in enumerate(csv.reader(fh, delimiter=self.delimiter), 1):
                    if not row or not any(field.strip() for field in row):
                        continue
                    book = self._parse_row(row, line_no)
                    if book is not None:
                        books[book.id] = book
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        return books

    # ------------------------- Writing ------------------------- #
    def _to_row(self, book: Book) -> List[str]:
        d = self.delimiter
        return [
            book.id,
            TextValidator.strip_delimiters(book.title, d),
            TextValidator.strip_delimiters(book.author, d),
            book.genre.value,
            str(book.publication_year),
            book.isbn,
            "true" if book.available else "false",
            format_timestamp(book.created_at),
        ]

    def _write(self, books: Dict[str, Book]) -> None:
        def write(fh):
            writer = csv.writer(fh, delimiter=self.delimiter, lineterminator="\n")
            for book in books.values():
                writer.writerow(self._to_row(book))

        atomic_write(self.path, write, newline="")

    # ------------------------- BookRepository ------------------------- #
    def save(self, book: Book) -> Book:
        with self._lock:
            books = self._read()
            books[book.id] = book
            self._write(books)
        return book

    def save_all(self, books: List[Book]) -> None:
        with self._lock:
            stored = self._read()
            for book in books:
                stored[book.id] = book
            self._write(stored)

    def find_by_id(self, book_id: str) -> Optional[Book]:
        with self._lock:
            return self._read().get(book_id)

    def find_all(self) -> List[Book]:
        with self._lock:
            return list(self._read().values())

    def delete_by_id(self, book_id: str) -> bool:
        with self._lock:
            books = self._read()
            if books.pop(book_id, None) is None:
                return False
            self._write(books)
        return True
