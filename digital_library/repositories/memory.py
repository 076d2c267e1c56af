"""In-memory adapters. Nothing survives the process."""
import copy
import threading
from typing import Dict, Generic, List, Optional, TypeVar

from digital_library.book import Book
from digital_library.loan import Loan
from digital_library.repositories.base import BookRepository, LoanRepository, UserRepository
from digital_library.user import User

T = TypeVar("T")


class _MemoryStore(Generic[T]):
    """Dict keyed by id behind a re-entrant lock.

    Entities are copied on the way in and out so a caller mutating its own
    object never changes what is stored.
    """

    def __init__(self) -> None:
        self._items: Dict[str, T] = {}
        self._lock = threading.RLock()

    def save(self, item: T) -> T:
        with self._lock:
            self._items[item.id] = copy.copy(item)
        return item

    def find_by_id(self, item_id: str) -> Optional[T]:
        with self._lock:
            item = self._items.get(item_id)
            return copy.copy(item) if item is not None else None

    def find_all(self) -> List[T]:
        with self._lock:
            return [copy.copy(item) for item in self._items.values()]

    def delete_by_id(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None


class MemoryBookRepository(_MemoryStore[Book], BookRepository):

    def save_all(self, books: List[Book]) -> None:
        with self._lock:
            for book in books:
                self._items[book.id] = copy.copy(book)


class MemoryUserRepository(_MemoryStore[User], UserRepository):
    pass


class MemoryLoanRepository(_MemoryStore[Loan], LoanRepository):

    def find_by_book_id(self, book_id: str) -> List[Loan]:
        with self._lock:
            return [copy.copy(loan) for loan in self._items.values() if loan.book_id == book_id]

    def find_by_user_id(self, user_id: str) -> List[Loan]:
        with self._lock:
            return [copy.copy(loan) for loan in self._items.values() if loan.user_id == user_id]
