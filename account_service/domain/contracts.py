"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Final

from .account import Account


class _Unset(Enum):
    token = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset.token
"""Marks a profile field that was absent from an update request."""


@dataclass(slots=True)
class RegistrationInput:
    """Raw registration fields as received; validated by the service."""

    username: Any
    password: Any
    email: Any
    phone: Any = None
    date_of_birth: Any = None


@dataclass(slots=True)
class LoginInput:
    """Raw login fields; either username or email identifies the account."""

    password: Any
    username: Any = None
    email: Any = None


@dataclass(slots=True)
class ProfileUpdateInput:
    """Partial profile update.

    A field left as ``UNSET`` is not touched. ``None`` or an empty string
    clears an optional field.
    """

    email: Any = UNSET
    phone: Any = UNSET
    date_of_birth: Any = UNSET

    def provided(self) -> dict[str, Any]:
        """Return only the fields present in the request."""
        values = {
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth,
        }
        return {name: value for name, value in values.items() if value is not UNSET}


@dataclass(slots=True)
class NewAccountRecord:
    """Normalised, pre-hashed fields handed to the store on registration."""

    username: str
    email: str
    secret_hash: str
    phone: str | None = None
    date_of_birth: date | None = None


@dataclass(slots=True)
class AuthResult:
    """Outcome of a successful registration or login."""

    account: Account
    token: str
