"""Field rules shared by registration, login and profile updates.

Every rule takes the raw request value and returns the normalised value or
raises ``ValueError`` with the message shown to the caller. ``FieldErrors``
runs several rules and reports all failures at once.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Callable, TypeVar

from .errors import FieldError, ValidationError

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{7,15}$")

PASSWORD_MIN_LENGTH = 6
# bcrypt only reads the first 72 bytes of its input
PASSWORD_MAX_BYTES = 72


def username(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Username is required")
    return value.strip()


def password(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError("Password is required")
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


def email(value: Any) -> str:
    """Trim, check the address shape and lowercase it."""
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValueError("Email must be a valid email address")
    return value.strip().lower()


def optional_phone(value: Any) -> str | None:
    """Return ``None`` for an empty value, otherwise a trimmed phone number."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str) or not PHONE_PATTERN.match(value.strip()):
        raise ValueError("Phone must be a valid phone number")
    return value.strip()


def optional_date_of_birth(value: Any) -> date | None:
    """Parse an ISO-8601 date (or datetime, truncated to its date)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValueError("Date of birth must be a valid ISO-8601 date")


class FieldErrors:
    """Collects rule failures across fields instead of stopping at the first."""

    def __init__(self) -> None:
        self.errors: list[FieldError] = []

    def check(self, field: str, rule: Callable[[Any], T], value: Any) -> T | None:
        try:
            return rule(value)
        except ValueError as exc:
            self.errors.append(FieldError(field=field, message=str(exc)))
            return None

    def add(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field=field, message=message))

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)
