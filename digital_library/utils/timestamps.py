from __future__ import annotations

from datetime import datetime
from typing import Any


def now() -> datetime:
    return datetime.now()


def format_timestamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; empty values give None.

    Raises ValueError for a non-empty value that is not a timestamp.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    return datetime.fromisoformat(text)


def parse_timestamp_or_none(value: Any) -> datetime | None:
    try:
        return parse_timestamp(value)
    except ValueError:
        return None
