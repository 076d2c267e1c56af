import logging
import os
import sqlite3

logger = logging.getLogger(__name__)


def get_db_connection(db_file: str) -> sqlite3.Connection:
    """Open a connection to the SQLite catalog database."""
    directory = os.path.dirname(os.path.abspath(db_file))
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_file)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: str) -> None:
    """Create the catalog tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                genre TEXT NOT NULL,
                publication_year INTEGER NOT NULL,
                isbn TEXT NOT NULL,
                available INTEGER NOT NULL DEFAULT 1,
                created_at TEXT
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(author)")
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: str) -> None:
    """Prepare the database file for use by the catalog repository."""
    create_tables(db_file)
    logger.debug("SQLite catalog ready at %s", db_file)
