from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from digital_library.errors import ValidationError
from digital_library.utils.records import first_value
from digital_library.utils.timestamps import format_timestamp, now, parse_timestamp_or_none
from digital_library.utils.validators import ISBNValidator, TextValidator, YearValidator, MIN_PUBLICATION_YEAR


class Genre(Enum):
    """Literary genres known to the catalog, valued by their display name."""

    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    THRILLER = "Thriller"
    HORROR = "Horror"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    PHILOSOPHY = "Philosophy"
    POETRY = "Poetry"
    DRAMA = "Drama"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    COOKING = "Cooking"
    TRAVEL = "Travel"
    SELF_HELP = "Self-Help"
    BUSINESS = "Business"
    HEALTH = "Health"
    ART = "Art"
    MUSIC = "Music"
    SPORTS = "Sports"
    OTHER = "Other"

    @property
    def display_name(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, name: Optional[str]) -> "Genre":
        """Case-insensitive lookup by display name. Never fails: unknown names map to OTHER.

        The Italian labels of older catalog snapshots are accepted as well.
        """
        if name is None or not str(name).strip():
            return cls.OTHER
        wanted = str(name).strip().lower()
        for genre in cls:
            if genre.value.lower() == wanted:
                return genre
        return cls[_ITALIAN_LABELS.get(wanted, "OTHER")]

    @classmethod
    def from_index(cls, index: int) -> "Genre":
        """1-based lookup for numbered menus; out of range maps to OTHER."""
        members = list(cls)
        if 1 <= index <= len(members):
            return members[index - 1]
        return cls.OTHER

    @classmethod
    def display_names(cls) -> List[str]:
        return [genre.value for genre in cls]

    @classmethod
    def formatted_list(cls) -> str:
        return "\n".join(f"{i:2d}. {genre.value}" for i, genre in enumerate(cls, 1))


# Lowercased labels from older snapshots, by member name; labels shared with English are omitted
_ITALIAN_LABELS = {
    "narrativa": "FICTION",
    "saggistica": "NON_FICTION",
    "giallo/mystery": "MYSTERY",
    "giallo": "MYSTERY",
    "romantico": "ROMANCE",
    "fantascienza": "SCIENCE_FICTION",
    "biografia": "BIOGRAPHY",
    "storia": "HISTORY",
    "scienza": "SCIENCE",
    "tecnologia": "TECHNOLOGY",
    "filosofia": "PHILOSOPHY",
    "poesia": "POETRY",
    "teatro": "DRAMA",
    "per bambini": "CHILDREN",
    "cucina": "COOKING",
    "viaggi": "TRAVEL",
    "auto-aiuto": "SELF_HELP",
    "salute": "HEALTH",
    "arte": "ART",
    "musica": "MUSIC",
    "sport": "SPORTS",
    "altro": "OTHER",
}


class Book:
    """A single catalog entry.

    Field values are validated on construction and on every assignment, so an
    invalid Book never reaches a repository. Two books are equal when their
    identifiers are equal.
    """

    def __init__(self, id: str, title: str, author: str, genre: Genre | str | None,
                 publication_year: int, isbn: str, available: bool = True,
                 created_at: datetime | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.genre = genre
        self.publication_year = publication_year
        self.isbn = isbn
        self.available = available
        self.created_at = created_at or now()

    # ------------------------- Validated fields ------------------------- #
    @property
    def id(self) -> str:
        return self._id

    @id.setter
    def id(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("ID cannot be empty.")
        self._id = value.strip()

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("Title cannot be empty.")
        self._title = value.strip()

    @property
    def author(self) -> str:
        return self._author

    @author.setter
    def author(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("Author cannot be empty.")
        self._author = value.strip()

    @property
    def genre(self) -> Genre:
        return self._genre

    @genre.setter
    def genre(self, value: Genre | str | None) -> None:
        if value is None:
            raise ValidationError("Genre cannot be empty.")
        self._genre = value if isinstance(value, Genre) else Genre.from_display_name(value)

    @property
    def publication_year(self) -> int:
        return self._publication_year

    @publication_year.setter
    def publication_year(self, value: int) -> None:
        try:
            year = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Publication year must be a number: {value!r}")
        if not YearValidator.is_valid_year(year):
            raise ValidationError(
                f"Publication year must be between {MIN_PUBLICATION_YEAR} and {YearValidator.current_year()}."
            )
        self._publication_year = year

    @property
    def isbn(self) -> str:
        return self._isbn

    @isbn.setter
    def isbn(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("ISBN cannot be empty.")
        if not ISBNValidator.is_valid_isbn(value):
            raise ValidationError(f"Invalid ISBN (expected 10 or 13 digits, optional '-' or spaces): {value}")
        self._isbn = ISBNValidator.normalize_isbn(value)

    @property
    def available(self) -> bool:
        return self._available

    @available.setter
    def available(self, value: bool) -> None:
        self._available = bool(value)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @created_at.setter
    def created_at(self, value: datetime) -> None:
        self._created_at = value

    # ------------------------- Identity ------------------------- #
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return (f"Book(id={self.id!r}, title={self.title!r}, author={self.author!r}, genre={self.genre.value!r}, "
                f"year={self.publication_year}, isbn={self.isbn!r}, available={self.available})")

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"[{self.id}] {self.title} by {self.author}"

    # ------------------------- Persistence helpers ------------------------- #
    @classmethod
    def restore(cls, id: str, title: str, author: str, genre: Genre | str | None,
                publication_year: int, isbn: str, available: bool = True,
                created_at: datetime | None = None) -> "Book":
        """Rebuild a stored record without re-running field validation.

        Backends use this so that defaulted values (empty text, year 0) load
        instead of failing the whole row.
        """
        book = cls.__new__(cls)
        book._id = id
        book._title = title
        book._author = author
        book._genre = genre if isinstance(genre, Genre) else Genre.from_display_name(genre)
        book._publication_year = publication_year
        book._isbn = isbn
        book._available = bool(available)
        book._created_at = created_at or now()
        return book

    def copy(self) -> "Book":
        return Book.restore(self.id, self.title, self.author, self.genre, self.publication_year,
                            self.isbn, self.available, self.created_at)

    def field_values(self) -> tuple:
        """Every persisted field, for comparing two records of the same book."""
        return (self.id, self.title, self.author, self.genre, self.publication_year,
                self.isbn, self.available, self.created_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre.value,
            "publication_year": self.publication_year,
            "isbn": self.isbn,
            "available": self.available,
            "created_at": format_timestamp(self.created_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        """Lenient decoding of a stored document.

        Absent fields default to an empty string, year 0 and available=True.
        The legacy camelCase keys (``publicationYear``, ``addedDate``) are accepted.
        """
        year = first_value(data, "publication_year", "publicationYear", default=0)
        try:
            year = int(float(year))
        except (TypeError, ValueError):
            year = 0

        available = first_value(data, "available", default=True)
        if isinstance(available, str):
            available = available.strip().lower() == "true"

        return Book.restore(
            id=str(first_value(data, "id", default="")).strip(),
            title=str(first_value(data, "title", default="") or ""),
            author=str(first_value(data, "author", default="") or ""),
            genre=Genre.from_display_name(first_value(data, "genre", default="")),
            publication_year=year,
            isbn=ISBNValidator.normalize_isbn(str(first_value(data, "isbn", default="") or "")),
            available=bool(available),
            created_at=parse_timestamp_or_none(first_value(data, "created_at", "addedDate", default=None)),
        )
