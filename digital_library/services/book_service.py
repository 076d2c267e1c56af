from __future__ import annotations

import logging
from typing import List, Optional

from digital_library.book import Book, Genre
from digital_library.errors import BookNotFoundError
from digital_library.repositories.base import BookRepository

logger = logging.getLogger(__name__)


class CatalogService:
    """Catalog operations on top of a single BookRepository."""

    def __init__(self, repository: BookRepository) -> None:
        self.repository = repository

    # ------------------------- Core operations ------------------------- #
    def add_book(self, book: Book) -> Book:
        saved = self.repository.save(book)
        logger.info("Book added: %s (%s)", book.title, book.id)
        return saved

    def get_book(self, book_id: str) -> Optional[Book]:
        return self.repository.find_by_id(book_id)

    def list_books(self) -> List[Book]:
        return self.repository.find_all()

    def update_book(self, book: Book) -> Book:
        """Replace the stored record of an existing book."""
        if self.repository.find_by_id(book.id) is None:
            raise BookNotFoundError(book.id)
        return self.repository.save(book)

    def delete_book(self, book_id: str) -> bool:
        removed = self.repository.delete_by_id(book_id)
        if removed:
            logger.info("Book removed: %s", book_id)
        return removed

    def reload(self) -> List[Book]:
        return self.repository.load_all()

    # ------------------------- Queries ------------------------- #
    def search_by_title(self, query: Optional[str]) -> List[Book]:
        """Case-insensitive substring match on the title. A blank query matches nothing."""
        if query is None or not query.strip():
            return []
        needle = query.strip().lower()
        return [book for book in self.repository.find_all() if needle in book.title.lower()]

    def search(self, query: Optional[str]) -> List[Book]:
        """Substring match over title, author and ISBN; a blank query lists everything."""
        books = self.repository.find_all()
        if query is None or not query.strip():
            return books
        needle = query.strip().lower()
        return [
            book for book in books
            if needle in book.title.lower() or needle in book.author.lower() or needle in book.isbn.lower()
        ]

    def filter_books(self, author: Optional[str] = None, genre: Optional[str | Genre] = None,
                     year: Optional[int] = None) -> List[Book]:
        """Books matching every supplied criterion.

        Author and genre compare exactly but ignore case; genre is matched by
        its display name. Without criteria the whole catalog is returned.
        """
        books = self.repository.find_all()
        if author is not None and author.strip():
            wanted_author = author.strip().lower()
            books = [b for b in books if b.author.lower() == wanted_author]
        if genre is not None:
            wanted_genre = (genre.value if isinstance(genre, Genre) else str(genre)).strip().lower()
            if wanted_genre:
                books = [b for b in books if b.genre.value.lower() == wanted_genre]
        if year is not None:
            books = [b for b in books if b.publication_year == year]
        return books
