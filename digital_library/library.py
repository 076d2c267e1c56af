"""
Process bootstrap.

``create_library`` builds every store, service and the lending orchestrator
exactly once, from a Settings instance, and hands the wired result to the
front ends. Nothing is re-selected or re-created later in the run.
"""
import logging
import os
from typing import Any, Callable, Dict, Optional, Tuple

from digital_library.config import Settings, settings as default_settings
from digital_library.errors import LibraryError
from digital_library.repositories import (
    BookRepository,
    CsvBookRepository,
    JsonBookRepository,
    JsonLoanRepository,
    JsonUserRepository,
    LoanRepository,
    MemoryBookRepository,
    MemoryLoanRepository,
    MemoryUserRepository,
    SqliteBookRepository,
    UserRepository,
)
from digital_library.services import CatalogService, LendingOrchestrator, LendingService, MembershipService

logger = logging.getLogger(__name__)


class Library:
    """The wired application: services, orchestrator and the active backend names."""

    def __init__(self, catalog: CatalogService, members: MembershipService, lending: LendingService,
                 backends: Optional[Dict[str, str]] = None, settings: Optional[Settings] = None) -> None:
        self.catalog = catalog
        self.members = members
        self.lending = lending
        self.orchestrator = LendingOrchestrator(catalog, members, lending)
        self.backends = backends or {"books": "memory", "users": "memory", "loans": "memory"}
        self.settings = settings or default_settings

    @classmethod
    def in_memory(cls, settings: Optional[Settings] = None) -> "Library":
        return cls(
            CatalogService(MemoryBookRepository()),
            MembershipService(MemoryUserRepository()),
            LendingService(MemoryLoanRepository()),
            settings=settings,
        )

    def get_statistics(self) -> Dict[str, Any]:
        books = self.catalog.list_books()
        loans = self.lending.list_loans()
        return {
            "books": len(books),
            "available_books": sum(1 for book in books if book.available),
            "users": len(self.members.list_users()),
            "loans": len(loans),
            "open_loans": sum(1 for loan in loans if loan.is_open),
        }


def _build(kind: str, name: str, factories: Dict[str, Callable[[], Any]], fallback: Callable[[], Any]) -> Tuple[Any, str]:
    """Instantiate the named backend, or the memory one if that is impossible."""
    key = (name or "").strip().lower()
    factory = factories.get(key)
    if factory is None:
        logger.error("Unknown %s backend %r (expected one of %s); falling back to memory",
                     kind, name, ", ".join(sorted(factories)))
        return fallback(), "memory"
    try:
        repository = factory()
        # A corrupt file must be noticed now rather than on the first request
        repository.find_all()
    except (LibraryError, OSError) as e:
        logger.error("Cannot initialize %s backend %r: %s; falling back to memory", kind, key, e)
        return fallback(), "memory"
    return repository, key


def build_book_repository(settings: Settings) -> Tuple[BookRepository, str]:
    factories = {
        "memory": MemoryBookRepository,
        "csv": lambda: CsvBookRepository(settings.books_csv_path),
        "json": lambda: JsonBookRepository(settings.books_json_path),
        "sqlite": lambda: SqliteBookRepository(settings.books_db_path),
    }
    return _build("book", settings.book_backend, factories, MemoryBookRepository)


def build_user_repository(settings: Settings) -> Tuple[UserRepository, str]:
    factories = {
        "memory": MemoryUserRepository,
        "json": lambda: JsonUserRepository(settings.users_json_path),
    }
    return _build("user", settings.user_backend, factories, MemoryUserRepository)


def build_loan_repository(settings: Settings) -> Tuple[LoanRepository, str]:
    factories = {
        "memory": MemoryLoanRepository,
        "json": lambda: JsonLoanRepository(settings.loans_json_path),
    }
    return _build("loan", settings.loan_backend, factories, MemoryLoanRepository)


def seed_catalog(library: Library, seed_path: str) -> int:
    """Load the seed file into an empty catalog, then give seeded unavailable books a placeholder loan.

    Returns the number of books loaded; 0 when the catalog already had books
    or there is no seed file.
    """
    if not os.path.exists(seed_path):
        return 0
    if library.catalog.list_books():
        logger.debug("Catalog not empty, seed file %s ignored", seed_path)
        return 0

    books = JsonBookRepository(seed_path).load_all()
    library.catalog.repository.save_all(books)
    logger.info("Seeded %d books from %s", len(books), seed_path)

    settings = library.settings
    library.orchestrator.reconcile_unavailable_books(
        settings.seed_user_name, settings.seed_user_email, settings.default_loan_days
    )
    return len(books)


def create_library(settings: Optional[Settings] = None) -> Library:
    settings = settings or default_settings
    books, book_backend = build_book_repository(settings)
    users, user_backend = build_user_repository(settings)
    loans, loan_backend = build_loan_repository(settings)

    library = Library(
        CatalogService(books),
        MembershipService(users),
        LendingService(loans),
        backends={"books": book_backend, "users": user_backend, "loans": loan_backend},
        settings=settings,
    )
    try:
        seed_catalog(library, settings.seed_path)
    except LibraryError as e:
        logger.error("Seeding from %s failed: %s", settings.seed_path, e)

    logger.info("Library ready (books=%s, users=%s, loans=%s)", book_backend, user_backend, loan_backend)
    return library
