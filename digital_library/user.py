from __future__ import annotations

from datetime import datetime

from digital_library.errors import ValidationError
from digital_library.utils.records import first_value
from digital_library.utils.timestamps import format_timestamp, now, parse_timestamp_or_none
from digital_library.utils.validators import TextValidator


class User:
    """A registered library member. Equal to another User with the same id."""

    def __init__(self, id: str, name: str, email: str, registered_at: datetime | None = None) -> None:
        if not TextValidator.is_non_empty(id):
            raise ValidationError("ID cannot be empty.")
        self.id = id.strip()
        self.name = name
        self.email = email
        self.registered_at = registered_at or now()

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("Name cannot be empty.")
        self._name = value.strip()

    @property
    def email(self) -> str:
        return self._email

    @email.setter
    def email(self, value: str) -> None:
        if not TextValidator.is_non_empty(value):
            raise ValidationError("Email cannot be empty.")
        self._email = value.strip()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, email={self.email!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "registered_at": format_timestamp(self.registered_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "User":
        user = User.__new__(User)
        user.id = str(first_value(data, "id", default="")).strip()
        user._name = str(first_value(data, "name", default=""))
        user._email = str(first_value(data, "email", default=""))
        user.registered_at = parse_timestamp_or_none(first_value(data, "registered_at", "registeredAt")) or now()
        return user
