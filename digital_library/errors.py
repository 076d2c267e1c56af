"""Exceptions raised by the library core.

Validation and lookup failures subclass the builtin ``ValueError`` and
``LookupError`` so callers that only know the builtins still catch them.
"""


class LibraryError(Exception):
    pass


class ValidationError(LibraryError, ValueError):
    """A field value was rejected at construction or assignment."""


class NotFoundError(LibraryError, LookupError):
    pass


class BookNotFoundError(NotFoundError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class LoanNotFoundError(NotFoundError):
    def __init__(self, loan_id: str) -> None:
        super().__init__(f"Loan not found: {loan_id}")
        self.loan_id = loan_id


class BookUnavailableError(LibraryError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book is not available (probably already on loan): {book_id}")
        self.book_id = book_id


class StorageError(LibraryError):
    """A backend could not complete an operation (I/O, decoding, database)."""
