import logging
from typing import List, Optional

from digital_library.errors import LoanNotFoundError
from digital_library.loan import Loan
from digital_library.repositories.base import LoanRepository
from digital_library.utils.timestamps import now

logger = logging.getLogger(__name__)


class LendingService:
    """Loan records only. Book availability is the orchestrator's concern."""

    def __init__(self, repository: LoanRepository) -> None:
        self.repository = repository

    def create_loan(self, loan: Loan) -> Loan:
        """Stamp the loan as starting now and persist it."""
        loan.loaned_at = now()
        return self.repository.save(loan)

    def record_loan(self, loan: Loan) -> Loan:
        """Persist a loan with the timestamps it already carries."""
        return self.repository.save(loan)

    def mark_returned(self, loan_id: str) -> Loan:
        loan = self.repository.find_by_id(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        if not loan.is_open:
            # The first return time stands
            logger.info("Loan %s was already returned at %s", loan_id, loan.returned_at)
            return loan
        loan.returned_at = now()
        self.repository.save(loan)
        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        return self.repository.find_by_id(loan_id)

    def list_loans(self) -> List[Loan]:
        return self.repository.find_all()

    def loans_for_book(self, book_id: str) -> List[Loan]:
        return self.repository.find_by_book_id(book_id)

    def loans_for_user(self, user_id: str) -> List[Loan]:
        return self.repository.find_by_user_id(user_id)

    def open_loan_for_book(self, book_id: str) -> Optional[Loan]:
        for loan in self.repository.find_by_book_id(book_id):
            if loan.is_open:
                return loan
        return None

    def delete_loan(self, loan_id: str) -> bool:
        return self.repository.delete_by_id(loan_id)
