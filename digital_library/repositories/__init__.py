"""Storage contracts and backend adapters."""

from digital_library.repositories.base import BookRepository, LoanRepository, UserRepository
from digital_library.repositories.csv_repository import CsvBookRepository
from digital_library.repositories.json_repository import (
    JsonBookRepository,
    JsonLoanRepository,
    JsonUserRepository,
)
from digital_library.repositories.memory import (
    MemoryBookRepository,
    MemoryLoanRepository,
    MemoryUserRepository,
)
from digital_library.repositories.sqlite_repository import SqliteBookRepository

__all__ = [
    "BookRepository",
    "UserRepository",
    "LoanRepository",
    "MemoryBookRepository",
    "MemoryUserRepository",
    "MemoryLoanRepository",
    "CsvBookRepository",
    "JsonBookRepository",
    "JsonUserRepository",
    "JsonLoanRepository",
    "SqliteBookRepository",
]
