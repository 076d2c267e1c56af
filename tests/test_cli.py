import json
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

import main
from conftest import make_book
from main import app, run_menu

runner = CliRunner()


def test_list_no_books(lib):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_list_books_plain(lib):
    lib.catalog.add_book(make_book("b1", "Dune", "Frank Herbert"))
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "b1 - Dune by Frank Herbert (1965, Science Fiction) ISBN 9780441013593 [available]" in result.stdout


def test_list_books_json(lib):
    lib.catalog.add_book(make_book("b1", "Dune"))
    result = runner.invoke(app, ["--output", "json", "list"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload[0]["id"] == "b1"
    assert payload[0]["genre"] == "Science Fiction"


def test_add_book_success(lib):
    result = runner.invoke(app, ["add", "--title", "Ulysses", "--author", "James Joyce", "--isbn",
                                 "978-0-19-953567-5", "--year", "1922", "--genre", "fiction"])
    assert result.exit_code == 0
    assert "Successfully added: Ulysses by James Joyce" in result.stdout
    book = lib.catalog.list_books()[0]
    assert book.isbn == "9780199535675"
    assert book.genre.value == "Fiction"


def test_add_book_invalid_isbn(lib):
    result = runner.invoke(app, ["add", "--title", "T", "--author", "A", "--isbn", "123", "--year", "2000"])
    assert result.exit_code == 0
    assert "Error: Invalid ISBN" in result.stdout
    assert lib.catalog.list_books() == []


def test_search_and_filter(lib):
    lib.catalog.add_book(make_book("b1", "Dune", "Frank Herbert", year=1965))
    lib.catalog.add_book(make_book("b2", "Emma", "Jane Austen", year=1815, isbn="9780141439587"))

    result = runner.invoke(app, ["search", "dun"])
    assert "Dune" in result.stdout and "Emma" not in result.stdout

    result = runner.invoke(app, ["search", "zzz"])
    assert "No books matching 'zzz'." in result.stdout

    result = runner.invoke(app, ["filter", "--author", "jane austen", "--year", "1815"])
    assert "Emma" in result.stdout and "Dune" not in result.stdout


def test_remove_book(lib):
    lib.catalog.add_book(make_book("b1"))
    result = runner.invoke(app, ["remove", "b1"])
    assert "Book b1 has been removed." in result.stdout

    result = runner.invoke(app, ["remove", "b1"])
    assert "Book b1 not found." in result.stdout


def test_register_lend_and_return(lib):
    lib.catalog.add_book(make_book("b1", "Dune"))

    result = runner.invoke(app, ["register", "Ada Lovelace", "ada@example.com"])
    assert "Registered user Ada Lovelace" in result.stdout
    user = lib.members.list_users()[0]

    result = runner.invoke(app, ["lend", "b1", user.id, "--days", "7"])
    assert result.exit_code == 0
    loan = lib.lending.list_loans()[0]
    assert f"Loan {loan.id} created" in result.stdout

    result = runner.invoke(app, ["lend", "b1", user.id])
    assert "Error: Book is not available" in result.stdout

    result = runner.invoke(app, ["loans", "--open"])
    assert "Dune -> Ada Lovelace" in result.stdout

    result = runner.invoke(app, ["return", loan.id])
    assert f"Loan {loan.id} returned." in result.stdout
    assert lib.catalog.get_book("b1").available is True


def test_return_unknown_loan(lib):
    result = runner.invoke(app, ["return", "nope"])
    assert result.exit_code == 0
    assert "Error: Loan not found: nope" in result.stdout


def test_users_and_audit_empty(lib):
    assert "No users registered." in runner.invoke(app, ["users"]).stdout
    assert "No inconsistencies found." in runner.invoke(app, ["audit"]).stdout


def test_audit_reports_problem(lib):
    lib.catalog.add_book(make_book("b1", available=False))
    result = runner.invoke(app, ["audit"])
    assert "unavailable_without_loan: Book b1 is unavailable but has no open loan" in result.stdout


@patch("subprocess.run")
@patch("webbrowser.open")
def test_serve_command(mock_webbrowser_open, mock_subprocess_run, lib):
    result = runner.invoke(app, ["serve", "--port", "9999"])
    assert result.exit_code == 0
    assert "Starting web UI on http://" in result.stdout
    mock_webbrowser_open.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "api:app" in args
    assert "9999" in args


def test_menu_add_and_list(lib, monkeypatch):
    answers = iter([
        "1", "", "Dune", "Frank Herbert", "5", "3000", "1965", "123", "9780441013593",
        "2",
        "0",
    ])
    monkeypatch.setattr(main.Prompt, "ask", MagicMock(side_effect=lambda *a, **k: next(answers)))
    monkeypatch.setattr(main.IntPrompt, "ask", MagicMock(side_effect=lambda *a, **k: int(next(answers))))

    run_menu(lib)

    books = lib.catalog.list_books()
    assert len(books) == 1
    assert (books[0].title, books[0].genre.value, books[0].publication_year) == ("Dune", "Science Fiction", 1965)


def test_menu_reports_errors_and_continues(lib, monkeypatch):
    answers = iter(["9", "missing-loan", "7", "no-book", "no-user", "14", "0"])
    monkeypatch.setattr(main.Prompt, "ask", MagicMock(side_effect=lambda *a, **k: next(answers)))
    monkeypatch.setattr(main.IntPrompt, "ask", MagicMock(side_effect=lambda *a, **k: int(next(answers))))
    printed = []
    monkeypatch.setattr(main.console, "print", lambda *a, **k: printed.append(" ".join(str(x) for x in a)))

    run_menu(lib)

    text = "\n".join(printed)
    assert "Loan not found: missing-loan" in text
    assert "Book not found: no-book" in text
    assert "Goodbye" in text
