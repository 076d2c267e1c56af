import json
import logging
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from digital_library.book import Book
from digital_library.errors import StorageError
from digital_library.loan import Loan
from digital_library.repositories.base import BookRepository, LoanRepository, UserRepository
from digital_library.repositories.file_store import FileBackedRepository, atomic_write
from digital_library.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonFileRepository(FileBackedRepository, Generic[T]):
    """A whole collection stored as one JSON array of objects.

    Objects without an id are skipped on read. Writes always use snake_case
    keys; reads also accept the older camelCase spelling.
    """

    def __init__(self, path: str, decode: Callable[[dict], T]) -> None:
        super().__init__(path)
        self._decode = decode

    def _read(self) -> Dict[str, T]:
        items: Dict[str, T] = {}
        if not self.exists():
            return items
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not text.strip():
            return items
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"{self.path} must contain a JSON array, found {type(data).__name__}")

        for index, record in enumerate(data):
            if not isinstance(record, dict) or not str(record.get("id") or "").strip():
                logger.warning("%s[%d]: record without an id skipped", self.path, index)
                continue
            try:
                item = self._decode(record)
            except (TypeError, ValueError) as e:
                logger.warning("%s[%d]: %s; record skipped", self.path, index, e)
                continue
            items[item.id] = item
        return items

    def _write(self, items: Dict[str, T]) -> None:
        payload = [item.to_dict() for item in items.values()]
        atomic_write(self.path, lambda fh: json.dump(payload, fh, indent=2, ensure_ascii=False))

    def save(self, item: T) -> T:
        with self._lock:
            items = self._read()
            items[item.id] = item
            self._write(items)
        return item

    def find_by_id(self, item_id: str) -> Optional[T]:
        with self._lock:
            return self._read().get(item_id)

    def find_all(self) -> List[T]:
        with self._lock:
            return list(self._read().values())

    def delete_by_id(self, item_id: str) -> bool:
        with self._lock:
            items = self._read()
            if items.pop(item_id, None) is None:
                return False
            self._write(items)
        return True


class JsonBookRepository(JsonFileRepository[Book], BookRepository):

    def __init__(self, path: str) -> None:
        super().__init__(path, Book.from_dict)

    def save_all(self, books: List[Book]) -> None:
        with self._lock:
            stored = self._read()
            for book in books:
                stored[book.id] = book
            self._write(stored)


class JsonUserRepository(JsonFileRepository[User], UserRepository):

    def __init__(self, path: str) -> None:
        super().__init__(path, User.from_dict)


class JsonLoanRepository(JsonFileRepository[Loan], LoanRepository):

    def __init__(self, path: str) -> None:
        super().__init__(path, Loan.from_dict)
