import re
from datetime import datetime
from typing import Optional

MIN_PUBLICATION_YEAR = 1450

_ISBN_SEPARATORS = re.compile(r"[-\s]")
_ISBN_DIGITS = re.compile(r"[0-9]{10}|[0-9]{13}")


class ISBNValidator:
    """ISBN-10 / ISBN-13 shape check.

    Hyphens and whitespace are ignored; the remaining characters must be
    exactly 10 or 13 digits. Check digits are not verified.
    """

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return _ISBN_SEPARATORS.sub("", raw)

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        if not isbn or not isbn.strip():
            return False
        return _ISBN_DIGITS.fullmatch(ISBNValidator.normalize_isbn(isbn)) is not None


class TextValidator:
    """Required-text checks and delimited-file sanitization."""

    @staticmethod
    def is_non_empty(text: Optional[str]) -> bool:
        return text is not None and bool(text.strip())

    @staticmethod
    def strip_delimiters(text: Optional[str], delimiter: str = ",") -> str:
        # Free text may not carry the field delimiter or line breaks into a delimited file
        if text is None:
            return ""
        cleaned = text.replace("\r", " ").replace("\n", " ").replace(delimiter, " ")
        return cleaned.strip()


class YearValidator:

    @staticmethod
    def current_year() -> int:
        return datetime.now().year

    @staticmethod
    def is_valid_year(year: int) -> bool:
        return MIN_PUBLICATION_YEAR <= year <= YearValidator.current_year()
