import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8080"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Digital Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Backend selection, fixed for the lifetime of the process
    book_backend: str = os.getenv("LIBRARY_BOOK_BACKEND", "csv")
    user_backend: str = os.getenv("LIBRARY_USER_BACKEND", "json")
    loan_backend: str = os.getenv("LIBRARY_LOAN_BACKEND", "json")

    # Data files; an empty value means "<data_dir>/<default name>"
    data_dir: str = os.getenv("LIBRARY_DATA_DIR", "data")
    books_csv_file: Optional[str] = os.getenv("LIBRARY_BOOKS_CSV")
    books_json_file: Optional[str] = os.getenv("LIBRARY_BOOKS_JSON")
    books_db_file: Optional[str] = os.getenv("LIBRARY_DB_FILE")
    users_json_file: Optional[str] = os.getenv("LIBRARY_USERS_JSON")
    loans_json_file: Optional[str] = os.getenv("LIBRARY_LOANS_JSON")
    seed_file: Optional[str] = os.getenv("LIBRARY_SEED_FILE")

    # Web front end
    static_dir: str = os.getenv("LIBRARY_STATIC_DIR", "frontend")

    # Lending
    default_loan_days: int = int(os.getenv("DEFAULT_LOAN_DAYS", "14"))
    seed_user_name: str = os.getenv("SEED_USER_NAME", "System (seed loans)")
    seed_user_email: str = os.getenv("SEED_USER_EMAIL", "seed@example.local")

    # Pagination
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "500"))

    def data_path(self, explicit: Optional[str], default_name: str) -> str:
        """Return ``explicit`` if set, otherwise ``default_name`` inside ``data_dir``."""
        if explicit:
            return explicit
        return os.path.join(self.data_dir, default_name)

    @property
    def books_csv_path(self) -> str:
        return self.data_path(self.books_csv_file, "books.csv")

    @property
    def books_json_path(self) -> str:
        return self.data_path(self.books_json_file, "books.json")

    @property
    def books_db_path(self) -> str:
        return self.data_path(self.books_db_file, "library.db")

    @property
    def users_json_path(self) -> str:
        return self.data_path(self.users_json_file, "users.json")

    @property
    def loans_json_path(self) -> str:
        return self.data_path(self.loans_json_file, "loans.json")

    @property
    def seed_path(self) -> str:
        return self.data_path(self.seed_file, "seed_books.json")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for an entry point."""
    name = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


settings = Settings()
