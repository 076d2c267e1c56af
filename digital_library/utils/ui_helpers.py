import json
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table

from digital_library.book import Book
from digital_library.loan import Loan
from digital_library.user import User

# Environment variable controlling CLI output: 'plain' (default), 'json' or 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"
OUTPUT_MODES = ("plain", "json", "rich")

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in OUTPUT_MODES:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, "plain").lower()
    return mode if mode in OUTPUT_MODES else "plain"


def _render(rows: Sequence[Any], empty_message: str, title: str,
            columns: List[Tuple[str, str]], cells: Callable[[Any], List[str]],
            line: Callable[[Any], str], payload: Callable[[Any], Dict[str, Any]],
            mode: Optional[str] = None) -> None:
    mode = mode or get_output_mode()

    if not rows:
        # Same message in every mode so scripts can rely on it
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([payload(row) for row in rows], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for name, style in columns:
            table.add_column(name, style=style)
        for row in rows:
            table.add_row(*cells(row))
        _console.print(table)
    else:
        for row in rows:
            print(line(row))


def _availability(book: Book) -> str:
    return "available" if book.available else "on loan"


def print_books(books: List[Book], mode: Optional[str] = None) -> None:
    """Print books in the current output mode.
    - plain: 'ID - Title by Author (Year, Genre) ISBN ... [status]' lines, or 'No books in library.'
    - json: JSON array of book documents
    - rich: Rich table
    """
    _render(
        books, "No books in library.", "📚 Books",
        [("ID", "magenta"), ("Title", "white"), ("Author", "white"), ("Genre", "cyan"),
         ("Year", "white"), ("ISBN", "white"), ("Status", "green")],
        lambda b: [b.id, b.title, b.author, b.genre.value, str(b.publication_year), b.isbn, _availability(b)],
        lambda b: f"{b.id} - {b.title} by {b.author} ({b.publication_year}, {b.genre.value}) "
                  f"ISBN {b.isbn} [{_availability(b)}]",
        lambda b: b.to_dict(),
        mode,
    )


def print_users(users: List[User], mode: Optional[str] = None) -> None:
    _render(
        users, "No users registered.", "👤 Users",
        [("ID", "magenta"), ("Name", "white"), ("Email", "white")],
        lambda u: [u.id, u.name, u.email],
        lambda u: f"{u.id} - {u.name} <{u.email}>",
        lambda u: u.to_dict(),
        mode,
    )


def _loan_status(loan: Loan) -> str:
    if not loan.is_open:
        return f"returned {loan.returned_at:%Y-%m-%d}"
    return "overdue" if loan.is_overdue() else "open"


def print_loans(loans: List[Loan], titles: Optional[Dict[str, str]] = None,
                names: Optional[Dict[str, str]] = None, mode: Optional[str] = None) -> None:
    """Print loans; ``titles`` and ``names`` resolve book and user ids for display."""
    titles = titles or {}
    names = names or {}

    def book_label(loan: Loan) -> str:
        return titles.get(loan.book_id, "[unknown]")

    def user_label(loan: Loan) -> str:
        return names.get(loan.user_id, "[unknown]")

    _render(
        loans, "No loans recorded.", "🔖 Loans",
        [("ID", "magenta"), ("Book", "white"), ("User", "white"), ("Due", "white"), ("Status", "green")],
        lambda l: [l.id, book_label(l), user_label(l), f"{l.due_at:%Y-%m-%d}", _loan_status(l)],
        lambda l: f"{l.id} - {book_label(l)} -> {user_label(l)} due {l.due_at:%Y-%m-%d} [{_loan_status(l)}]",
        lambda l: dict(l.to_dict(), book_title=book_label(l), user_name=user_label(l)),
        mode,
    )


def print_inconsistencies(found: List[Any], mode: Optional[str] = None) -> None:
    _render(
        found, "No inconsistencies found.", "⚠️ Lending audit",
        [("Kind", "yellow"), ("Book", "magenta"), ("Loan", "magenta"), ("Details", "white")],
        lambda i: [i.kind, i.book_id, i.loan_id or "", i.message],
        lambda i: f"{i.kind}: {i.message}",
        lambda i: i.to_dict(),
        mode,
    )
