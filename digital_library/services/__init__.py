"""Catalog, membership and lending services."""

from digital_library.services.book_service import CatalogService
from digital_library.services.lending import Inconsistency, LendingOrchestrator, LendingResult
from digital_library.services.loan_service import LendingService
from digital_library.services.user_service import MembershipService

__all__ = [
    "CatalogService",
    "MembershipService",
    "LendingService",
    "LendingOrchestrator",
    "LendingResult",
    "Inconsistency",
]
