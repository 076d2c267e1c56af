from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from digital_library.utils.records import first_value
from digital_library.utils.timestamps import format_timestamp, now, parse_timestamp_or_none


@dataclass(eq=False)
class Loan:
    """One lending of a book to a user.

    ``returned_at`` is None while the loan is open. Once set it is never
    cleared. The loan refers to the book and the user by id only.
    """

    id: str
    book_id: str
    user_id: str
    due_at: datetime
    loaned_at: datetime | None = None
    returned_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.loaned_at is None:
            self.loaned_at = now()

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def is_overdue(self, when: Optional[datetime] = None) -> bool:
        when = when or now()
        return self.is_open and when > self.due_at

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Loan):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "loaned_at": format_timestamp(self.loaned_at),
            "due_at": format_timestamp(self.due_at),
            "returned_at": format_timestamp(self.returned_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "Loan":
        loaned_at = parse_timestamp_or_none(first_value(data, "loaned_at", "loanedAt")) or now()
        return Loan(
            id=str(first_value(data, "id", default="")).strip(),
            book_id=str(first_value(data, "book_id", "bookId", default="")),
            user_id=str(first_value(data, "user_id", "userId", default="")),
            loaned_at=loaned_at,
            due_at=parse_timestamp_or_none(first_value(data, "due_at", "dueAt")) or loaned_at,
            returned_at=parse_timestamp_or_none(first_value(data, "returned_at", "returnedAt")),
        )
