import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from digital_library.book import Book, Genre
from digital_library.config import configure_logging, settings
from digital_library.errors import (
    BookUnavailableError,
    LoanNotFoundError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from digital_library.library import Library, create_library
from digital_library.loan import Loan
from digital_library.services import LendingResult
from digital_library.user import User
from digital_library.utils.ids import new_id
from digital_library.utils.timestamps import format_timestamp

logger = logging.getLogger(__name__)

UNKNOWN = "[unknown]"


# --- Models ---
class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses the field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookModel(CamelModel):
    id: str
    title: str
    author: str
    genre: str
    publication_year: int
    isbn: str
    available: bool
    created_at: str | None = None

    @classmethod
    def from_book(cls, book: Book) -> "BookModel":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            genre=book.genre.value,
            publication_year=book.publication_year,
            isbn=book.isbn,
            available=book.available,
            created_at=format_timestamp(book.created_at),
        )


class BookCreateModel(CamelModel):
    title: str
    author: str
    genre: str = Field(default=Genre.OTHER.value, description="Genre display name; unknown names become 'Other'")
    publication_year: int
    isbn: str


class BookPage(CamelModel):
    items: List[BookModel]
    total: int
    limit: int
    offset: int


class UserModel(CamelModel):
    id: str
    name: str
    email: str
    registered_at: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserModel":
        return cls(id=user.id, name=user.name, email=user.email, registered_at=format_timestamp(user.registered_at))


class UserCreateModel(CamelModel):
    name: str
    email: str


class LoanModel(CamelModel):
    id: str
    book_id: str
    user_id: str
    loaned_at: str | None = None
    due_at: str | None = None
    returned_at: str | None = None
    book_title: str | None = None
    user_name: str | None = None

    @classmethod
    def from_loan(cls, loan: Loan, book_title: Optional[str] = None, user_name: Optional[str] = None) -> "LoanModel":
        return cls(
            id=loan.id,
            book_id=loan.book_id,
            user_id=loan.user_id,
            loaned_at=format_timestamp(loan.loaned_at),
            due_at=format_timestamp(loan.due_at),
            returned_at=format_timestamp(loan.returned_at) or None,
            book_title=book_title,
            user_name=user_name,
        )


class LoanResultModel(LoanModel):
    warnings: List[str] = []

    @classmethod
    def from_result(cls, result: LendingResult) -> "LoanResultModel":
        base = LoanModel.from_loan(result.loan)
        return cls(**base.model_dump(), warnings=list(result.warnings))


class LoanCreateModel(CamelModel):
    book_id: str
    user_id: str
    days: int = Field(default=settings.default_loan_days, ge=1)


class InconsistencyModel(CamelModel):
    kind: str
    book_id: str
    loan_id: str | None = None
    message: str


# --- Application ---
def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the API around ``library``; without one, the library is created at start-up."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "library", None) is None:
            configure_logging()
            app.state.library = create_library(settings)
        yield

    app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, lifespan=lifespan)
    app.state.library = library

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed input is a client error like any other rejected field value
        return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Storage backend failure."})

    # --- Health check ---
    @app.get("/health")
    def health(lib: Library = Depends(get_library)):
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": settings.app_version,
            "backends": lib.backends,
            **lib.get_statistics(),
        }

    # --- Books ---
    @app.get("/api/books", response_model=BookPage)
    def list_books(
        q: Optional[str] = Query(None, description="Matches title, author or ISBN, case ignored"),
        limit: Optional[int] = Query(None, ge=1, description="Page size"),
        offset: int = Query(0, ge=0, description="Number of results to skip"),
        lib: Library = Depends(get_library),
    ):
        """One page of the catalog, optionally narrowed by a search term."""
        limit = min(limit or lib.settings.default_page_size, lib.settings.max_page_size)
        books = lib.catalog.search(q)
        page = books[offset:offset + limit]
        return BookPage(items=[BookModel.from_book(b) for b in page], total=len(books), limit=limit, offset=offset)

    @app.post("/api/books", response_model=BookModel, status_code=201)
    def add_book(payload: BookCreateModel, lib: Library = Depends(get_library)):
        try:
            book = Book(new_id(), payload.title, payload.author, Genre.from_display_name(payload.genre),
                        payload.publication_year, payload.isbn)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return BookModel.from_book(lib.catalog.add_book(book))

    @app.get("/api/books/{book_id}", response_model=BookModel)
    def get_book(book_id: str, lib: Library = Depends(get_library)):
        book = lib.catalog.get_book(book_id)
        if book is None:
            raise HTTPException(status_code=404, detail=f"Book not found: {book_id}")
        return BookModel.from_book(book)

    @app.delete("/api/books/{book_id}", status_code=204)
    def delete_book(book_id: str, lib: Library = Depends(get_library)):
        if not lib.catalog.delete_book(book_id):
            raise HTTPException(status_code=404, detail=f"Book not found: {book_id}")
        return Response(status_code=204)

    # --- Users ---
    @app.get("/api/users", response_model=List[UserModel])
    def list_users(lib: Library = Depends(get_library)):
        return [UserModel.from_user(u) for u in lib.members.list_users()]

    @app.post("/api/users", response_model=UserModel, status_code=201)
    def register_user(payload: UserCreateModel, lib: Library = Depends(get_library)):
        try:
            user = lib.members.register(payload.name, payload.email)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return UserModel.from_user(user)

    # --- Loans ---
    @app.get("/api/loans", response_model=List[LoanModel])
    def list_loans(lib: Library = Depends(get_library)):
        """Every loan, with the book title and user name resolved for display."""
        titles = {b.id: b.title for b in lib.catalog.list_books()}
        names = {u.id: u.name for u in lib.members.list_users()}
        return [
            LoanModel.from_loan(loan, titles.get(loan.book_id, UNKNOWN), names.get(loan.user_id, UNKNOWN))
            for loan in lib.lending.list_loans()
        ]

    @app.post("/api/loans", response_model=LoanResultModel, status_code=201)
    def create_loan(payload: LoanCreateModel, lib: Library = Depends(get_library)):
        try:
            result = lib.orchestrator.request_loan(payload.book_id, payload.user_id, payload.days)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except BookUnavailableError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return LoanResultModel.from_result(result)

    @app.post("/api/loans/{loan_id}/return", response_model=LoanResultModel)
    def return_loan(loan_id: str, lib: Library = Depends(get_library)):
        try:
            result = lib.orchestrator.return_loan(loan_id)
        except LoanNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return LoanResultModel.from_result(result)

    @app.get("/api/audit", response_model=List[InconsistencyModel])
    def audit(lib: Library = Depends(get_library)):
        return [InconsistencyModel(**i.to_dict()) for i in lib.orchestrator.audit()]

    # --- Static files ---
    @app.get("/{path:path}", include_in_schema=False)
    def static_file(path: str, lib: Library = Depends(get_library)):
        """Serve the web front end; ``/`` is ``index.html``."""
        if ".." in path:
            raise HTTPException(status_code=400, detail="Bad path")
        root = os.path.abspath(lib.settings.static_dir)
        target = os.path.abspath(os.path.join(root, path or "index.html"))
        if os.path.isdir(target):
            target = os.path.join(target, "index.html")
        if not target.startswith(root + os.sep) or not os.path.isfile(target):
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(target)

    return app


def jsonable_errors(exc: RequestValidationError) -> List[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


app = create_app()
