"""
Lending coordination across the catalog and the loan store.

Creating or closing a loan touches two stores that share no transaction, so
the orchestrator runs the steps in a fixed order: the loan record first, the
book's availability flag second. A failure in the second step does not undo
the first; it is logged and reported on the LendingResult, and ``audit`` /
``reconcile_unavailable_books`` are the tools that find and repair the gap.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

from digital_library.errors import (
    BookNotFoundError,
    BookUnavailableError,
    LibraryError,
    LoanNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from digital_library.loan import Loan
from digital_library.services.book_service import CatalogService
from digital_library.services.loan_service import LendingService
from digital_library.services.user_service import MembershipService
from digital_library.utils.ids import new_id
from digital_library.utils.timestamps import now

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DAYS = 14


@dataclass
class LendingResult:
    """Outcome of a lending operation.

    ``warnings`` lists the follow-up steps that did not complete; the loan
    itself was persisted either way.
    """

    loan: Loan
    warnings: List[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.warnings


@dataclass(frozen=True)
class Inconsistency:
    kind: str
    book_id: str
    message: str
    loan_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "book_id": self.book_id, "loan_id": self.loan_id, "message": self.message}


# Inconsistency kinds reported by audit()
UNAVAILABLE_WITHOUT_LOAN = "unavailable_without_loan"
AVAILABLE_WITH_OPEN_LOAN = "available_with_open_loan"
LOAN_FOR_MISSING_BOOK = "loan_for_missing_book"
MULTIPLE_OPEN_LOANS = "multiple_open_loans"


class LendingOrchestrator:
    """Keeps a book's availability in step with its open loan.

    ``request_loan`` and ``return_loan`` are serialized by a process-local
    lock, so two requests for the same book cannot both see it available.
    """

    def __init__(self, catalog: CatalogService, members: MembershipService, lending: LendingService) -> None:
        self.catalog = catalog
        self.members = members
        self.lending = lending
        self._lock = threading.RLock()

    def request_loan(self, book_id: str, user_id: str, days: int = DEFAULT_LOAN_DAYS) -> LendingResult:
        if days < 1:
            raise ValidationError("Loan duration must be at least one day.")
        with self._lock:
            book = self.catalog.get_book(book_id)
            if book is None:
                raise BookNotFoundError(book_id)
            if not book.available:
                raise BookUnavailableError(book_id)
            if self.members.get_user(user_id) is None:
                raise UserNotFoundError(user_id)

            loan = Loan(id=new_id(), book_id=book_id, user_id=user_id, due_at=now() + timedelta(days=days))
            loan = self.lending.create_loan(loan)

            result = LendingResult(loan)
            try:
                book.available = False
                self.catalog.update_book(book)
            except LibraryError as e:
                message = f"Loan {loan.id} created but book {book_id} could not be marked unavailable: {e}"
                logger.warning(message)
                result.warnings.append(message)
            else:
                logger.info("Book %s lent to user %s until %s (loan %s)", book_id, user_id, loan.due_at, loan.id)
            return result

    def return_loan(self, loan_id: str) -> LendingResult:
        with self._lock:
            existing = self.lending.get_loan(loan_id)
            if existing is None:
                raise LoanNotFoundError(loan_id)
            if not existing.is_open:
                message = f"Loan {loan_id} was already returned; book availability left unchanged"
                logger.info(message)
                return LendingResult(existing, [message])

            loan = self.lending.mark_returned(loan_id)
            result = LendingResult(loan)
            try:
                book = self.catalog.get_book(loan.book_id)
                if book is None:
                    raise BookNotFoundError(loan.book_id)
                book.available = True
                self.catalog.update_book(book)
            except LibraryError as e:
                message = f"Loan {loan_id} returned but book {loan.book_id} could not be marked available: {e}"
                logger.warning(message)
                result.warnings.append(message)
            else:
                logger.info("Loan %s returned, book %s available again", loan_id, loan.book_id)
            return result

    def audit(self) -> List[Inconsistency]:
        """Find every place where availability and open loans disagree. Nothing is repaired."""
        books = {book.id: book for book in self.catalog.list_books()}
        open_loans: Dict[str, List[Loan]] = {}
        for loan in self.lending.list_loans():
            if loan.is_open:
                open_loans.setdefault(loan.book_id, []).append(loan)

        found: List[Inconsistency] = []
        for book in books.values():
            loans = open_loans.get(book.id, [])
            if not book.available and not loans:
                found.append(Inconsistency(UNAVAILABLE_WITHOUT_LOAN, book.id,
                                           f"Book {book.id} is unavailable but has no open loan"))
            if book.available and loans:
                found.append(Inconsistency(AVAILABLE_WITH_OPEN_LOAN, book.id,
                                           f"Book {book.id} is available but loan {loans[0].id} is open",
                                           loans[0].id))
            if len(loans) > 1:
                found.append(Inconsistency(MULTIPLE_OPEN_LOANS, book.id,
                                           f"Book {book.id} has {len(loans)} open loans"))
        for book_id, loans in open_loans.items():
            if book_id in books:
                continue
            for loan in loans:
                found.append(Inconsistency(LOAN_FOR_MISSING_BOOK, book_id,
                                           f"Open loan {loan.id} refers to missing book {book_id}", loan.id))

        if found:
            logger.warning("Lending audit found %d inconsistencies", len(found))
        return found

    def reconcile_unavailable_books(self, placeholder_name: str, placeholder_email: str,
                                    days: int = DEFAULT_LOAN_DAYS) -> List[Loan]:
        """Give every unavailable book without an open loan a backdated placeholder loan.

        Loans start at the book's ``created_at`` and belong to a placeholder user,
        looked up by email and registered when missing.
        """
        with self._lock:
            open_books = {loan.book_id for loan in self.lending.list_loans() if loan.is_open}
            orphans = [book for book in self.catalog.list_books()
                       if not book.available and book.id not in open_books]
            if not orphans:
                return []

            user = self.members.find_by_email(placeholder_email)
            if user is None:
                user = self.members.register(placeholder_name, placeholder_email)

            created = []
            for book in orphans:
                loan = Loan(id=new_id(), book_id=book.id, user_id=user.id,
                            loaned_at=book.created_at, due_at=book.created_at + timedelta(days=days))
                created.append(self.lending.record_loan(loan))
            logger.info("Recorded %d placeholder loans for unavailable books", len(created))
            return created
