import logging
import os
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from digital_library.book import Book, Genre
from digital_library.config import configure_logging, settings
from digital_library.errors import LibraryError, ValidationError
from digital_library.library import Library, create_library
from digital_library.utils.ids import new_id
from digital_library.utils.ui_helpers import (
    print_books,
    print_inconsistencies,
    print_loans,
    print_users,
    set_output_mode,
)
from digital_library.utils.validators import ISBNValidator, YearValidator, MIN_PUBLICATION_YEAR

APP_NAME = "Digital Library"

logger = logging.getLogger(__name__)
console = Console()


class LibraryManager:
    """Holds the one Library of this process, built on first use."""

    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        if cls._instance is None:
            cls._instance = create_library(settings)
        return cls._instance

    @classmethod
    def set_instance(cls, library: Optional[Library]) -> None:
        cls._instance = library


def _lookup_tables(lib: Library):
    titles = {book.id: book.title for book in lib.catalog.list_books()}
    names = {user.id: user.name for user in lib.members.list_users()}
    return titles, names


# --- Typer CLI application ---
app = typer.Typer(help="Digital Library CLI")


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
):
    """Global CLI options (e.g. output mode). Without a command the interactive menu starts."""
    configure_logging()
    if output:
        set_output_mode(output)
    if ctx.invoked_subcommand is None:
        run_menu()


@app.command("list")
def cli_list():
    """List every book in the catalog."""
    print_books(LibraryManager.get_instance().catalog.list_books())


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Book author"),
    isbn: str = typer.Option(..., "--isbn", "-i", help="ISBN-10 or ISBN-13, hyphens allowed"),
    year: int = typer.Option(..., "--year", "-y", help="Publication year"),
    genre: str = typer.Option("Other", "--genre", "-g", help="Genre display name, e.g. 'Science Fiction'"),
):
    """Add a book to the catalog."""
    lib = LibraryManager.get_instance()
    try:
        book = Book(new_id(), title, author, Genre.from_display_name(genre), year, isbn)
        lib.catalog.add_book(book)
        print(f"Successfully added: {book.title} by {book.author} (id {book.id})")
    except LibraryError as e:
        print(f"Error: {e}")


@app.command("search")
def cli_search(query: str = typer.Argument(..., help="Part of the title to look for")):
    """Search books by title."""
    books = LibraryManager.get_instance().catalog.search_by_title(query)
    if not books:
        print(f"No books matching '{query}'.")
        return
    print_books(books)


@app.command("filter")
def cli_filter(
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Exact author, case ignored"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Genre display name"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Publication year"),
):
    """Filter books by author, genre and year. Every given criterion must match."""
    print_books(LibraryManager.get_instance().catalog.filter_books(author=author, genre=genre, year=year))


@app.command("remove")
def cli_remove(book_id: str):
    """Remove a book by id."""
    if LibraryManager.get_instance().catalog.delete_book(book_id):
        print(f"Book {book_id} has been removed.")
    else:
        print(f"Book {book_id} not found.")


@app.command("users")
def cli_users():
    """List registered users."""
    print_users(LibraryManager.get_instance().members.list_users())


@app.command("register")
def cli_register(name: str, email: str):
    """Register a new user."""
    try:
        user = LibraryManager.get_instance().members.register(name, email)
        print(f"Registered user {user.name} with id {user.id}")
    except LibraryError as e:
        print(f"Error: {e}")


@app.command("lend")
def cli_lend(
    book_id: str,
    user_id: str,
    days: int = typer.Option(settings.default_loan_days, "--days", "-d", help="Loan duration in days"),
):
    """Lend a book to a user."""
    try:
        result = LibraryManager.get_instance().orchestrator.request_loan(book_id, user_id, days)
    except LibraryError as e:
        print(f"Error: {e}")
        return
    print(f"Loan {result.loan.id} created, due {result.loan.due_at:%Y-%m-%d}")
    for warning in result.warnings:
        print(f"Warning: {warning}")


@app.command("loans")
def cli_loans(
    open_only: bool = typer.Option(False, "--open", help="Only loans not yet returned"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="Only loans of this user"),
):
    """List loans."""
    lib = LibraryManager.get_instance()
    loans = lib.lending.loans_for_user(user_id) if user_id else lib.lending.list_loans()
    if open_only:
        loans = [loan for loan in loans if loan.is_open]
    titles, names = _lookup_tables(lib)
    print_loans(loans, titles, names)


@app.command("return")
def cli_return(loan_id: str):
    """Return a loaned book."""
    try:
        result = LibraryManager.get_instance().orchestrator.return_loan(loan_id)
    except LibraryError as e:
        print(f"Error: {e}")
        return
    print(f"Loan {result.loan.id} returned.")
    for warning in result.warnings:
        print(f"Warning: {warning}")


@app.command("audit")
def cli_audit():
    """Report books whose availability disagrees with their loans."""
    print_inconsistencies(LibraryManager.get_instance().orchestrator.audit())


@app.command("menu")
def cli_menu():
    """Start the interactive menu."""
    run_menu()


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: API_PORT)"),
    timeout: int = typer.Option(0, "--timeout", help="Seconds to run before exiting automatically (0 = no timeout)"),
):
    """Start the web interface with Uvicorn."""
    serve(host, port, timeout)


def serve(host: Optional[str] = None, port: Optional[int] = None, timeout: Optional[int] = None) -> None:
    """Run the HTTP API in a Uvicorn child process."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/"
    print(f"Starting web UI on {url}")
    try:
        webbrowser.open(url)
    except webbrowser.Error:
        logger.info("Could not open a web browser for %s", url)

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
        "--log-level", settings.log_level.lower(),
    ]
    try:
        if timeout and timeout > 0:
            # No reloader here, so terminating the child stops the server
            proc = subprocess.Popen(args, start_new_session=os.name != "nt")
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait(timeout=3)
        else:
            subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] the Python interpreter could not start Uvicorn.")


# --- Interactive menu ---
def _ask_text(label: str) -> str:
    """Prompt until a non-blank answer is given."""
    while True:
        answer = Prompt.ask(label).strip()
        if answer:
            return answer
        console.print("[yellow]A value is required.[/]")


def _ask_year() -> int:
    while True:
        year = IntPrompt.ask(f"Publication year ({MIN_PUBLICATION_YEAR}-{YearValidator.current_year()})")
        if YearValidator.is_valid_year(year):
            return year
        console.print("[yellow]Year out of range, try again.[/]")


def _ask_isbn() -> str:
    while True:
        isbn = _ask_text("ISBN (10 or 13 digits)")
        if ISBNValidator.is_valid_isbn(isbn):
            return isbn
        console.print("[yellow]Invalid ISBN, try again.[/]")


def _ask_genre() -> Genre:
    console.print(Genre.formatted_list())
    return Genre.from_index(IntPrompt.ask("Genre number"))


def add_book(lib: Library) -> None:
    """Collect the fields of a book and add it to the catalog."""
    title = _ask_text("Title")
    author = _ask_text("Author")
    genre = _ask_genre()
    year = _ask_year()
    isbn = _ask_isbn()
    book = lib.catalog.add_book(Book(new_id(), title, author, genre, year, isbn))
    console.print(Panel.fit(f"[green]Added:[/] [bold]{escape(book.title)}[/] by {escape(book.author)} "
                            f"(id {book.id})", title="✅ Success", border_style="green"))


def list_books(lib: Library) -> None:
    print_books(lib.catalog.list_books(), mode="rich")


def search_books(lib: Library) -> None:
    query = _ask_text("Search title")
    books = lib.catalog.search_by_title(query)
    if not books:
        console.print(f"[yellow]🔍 No books matching '{escape(query)}'.[/]")
        return
    print_books(books, mode="rich")


def remove_book(lib: Library) -> None:
    """Delete a book after showing it and asking for confirmation."""
    book_id = _ask_text("🔍 Id of the book to delete")
    book = lib.catalog.get_book(book_id)
    if book is None:
        console.print(f"[yellow]⚠️ No book with id [bold]{escape(book_id)}[/].[/]")
        return
    console.print(Panel(
        f"[bold]Title:[/] {escape(book.title)}\n"
        f"[bold]Author:[/] {escape(book.author)}\n"
        f"[bold]ISBN:[/] {book.isbn}",
        title="📚 Book to delete",
        border_style="yellow",
    ))
    if Confirm.ask("🗑️ Delete this book?", default=False):
        if lib.catalog.delete_book(book_id):
            console.print(f"[green]✅ [bold]{escape(book.title)}[/] deleted.[/]")
        else:
            console.print("[red]❌ Delete failed.[/]")
    else:
        console.print("[blue]🚫 Cancelled.[/]")


def register_user(lib: Library) -> None:
    user = lib.members.register(_ask_text("Name"), _ask_text("Email"))
    console.print(f"[green]Registered [bold]{escape(user.name)}[/] with id {user.id}[/]")


def list_users(lib: Library) -> None:
    print_users(lib.members.list_users(), mode="rich")


def create_loan(lib: Library) -> None:
    book_id = _ask_text("Book id")
    user_id = _ask_text("User id")
    days = IntPrompt.ask("Days", default=settings.default_loan_days)
    result = lib.orchestrator.request_loan(book_id, user_id, days)
    console.print(f"[green]Loan {result.loan.id} created, due {result.loan.due_at:%Y-%m-%d}[/]")
    for warning in result.warnings:
        console.print(f"[yellow]⚠️ {escape(warning)}[/]")


def list_loans(lib: Library) -> None:
    titles, names = _lookup_tables(lib)
    print_loans(lib.lending.list_loans(), titles, names, mode="rich")


def return_loan(lib: Library) -> None:
    result = lib.orchestrator.return_loan(_ask_text("Loan id"))
    console.print(f"[green]Loan {result.loan.id} returned.[/]")
    for warning in result.warnings:
        console.print(f"[yellow]⚠️ {escape(warning)}[/]")


MENU_ACTIONS = {
    "1": ("Add book", "➕", add_book),
    "2": ("List books", "📚", list_books),
    "3": ("Search by title", "🔎", search_books),
    "4": ("Delete book by id", "🗑️", remove_book),
    "5": ("Register user", "👤", register_user),
    "6": ("List users", "👥", list_users),
    "7": ("Create loan", "🔖", create_loan),
    "8": ("List loans", "📋", list_loans),
    "9": ("Return loan", "↩️", return_loan),
}


def render_menu() -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, (label, icon, _) in MENU_ACTIONS.items():
        table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
    table.add_row("[reverse]0[/]", "🚪 Exit")
    console.print(Panel(table, title=APP_NAME, border_style="cyan", box=box.HEAVY, padding=(1, 2)))


def run_menu(lib: Optional[Library] = None) -> None:
    """Numbered menu loop. Errors are reported and the loop continues."""
    lib = lib or LibraryManager.get_instance()
    while True:
        render_menu()
        choice = Prompt.ask("Choose an option", choices=[*MENU_ACTIONS, "0"], default="2").strip()
        if choice == "0":
            console.print("[green]Goodbye![/]")
            break
        label, _, action = MENU_ACTIONS[choice]
        try:
            action(lib)
        except ValidationError as e:
            console.print(f"[bold red]Invalid input:[/] {escape(str(e))}")
        except LibraryError as e:
            console.print(f"[bold red]{escape(label)} failed:[/] {escape(str(e))}")
        console.print()


if __name__ == "__main__":
    app()
