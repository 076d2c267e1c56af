"""
Storage contracts for the library core.

Each entity kind has one abstract repository. Services depend only on these
contracts; the concrete adapter is chosen once at start-up by the bootstrap.
Every adapter saves by insert-or-replace on the entity id and raises
StorageError when an operation cannot complete.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from digital_library.book import Book
from digital_library.loan import Loan
from digital_library.user import User


class BookRepository(ABC):
    """Repository interface for catalog entries."""

    @abstractmethod
    def save(self, book: Book) -> Book:
        """Insert the book or replace the stored record with the same id."""

    @abstractmethod
    def find_by_id(self, book_id: str) -> Optional[Book]:
        pass

    @abstractmethod
    def find_all(self) -> List[Book]:
        pass

    @abstractmethod
    def delete_by_id(self, book_id: str) -> bool:
        """Remove the record; False when nothing was stored under the id."""

    @abstractmethod
    def save_all(self, books: List[Book]) -> None:
        """Insert-or-replace every book in one write."""

    def load_all(self) -> List[Book]:
        """Re-read the whole catalog from the backing store."""
        return self.find_all()


class UserRepository(ABC):
    """Repository interface for registered members."""

    @abstractmethod
    def save(self, user: User) -> User:
        pass

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def find_all(self) -> List[User]:
        pass

    @abstractmethod
    def delete_by_id(self, user_id: str) -> bool:
        pass


class LoanRepository(ABC):
    """Repository interface for loan records."""

    @abstractmethod
    def save(self, loan: Loan) -> Loan:
        pass

    @abstractmethod
    def find_by_id(self, loan_id: str) -> Optional[Loan]:
        pass

    @abstractmethod
    def find_all(self) -> List[Loan]:
        pass

    @abstractmethod
    def delete_by_id(self, loan_id: str) -> bool:
        pass

    def find_by_book_id(self, book_id: str) -> List[Loan]:
        return [loan for loan in self.find_all() if loan.book_id == book_id]

    def find_by_user_id(self, user_id: str) -> List[Loan]:
        return [loan for loan in self.find_all() if loan.user_id == user_id]
