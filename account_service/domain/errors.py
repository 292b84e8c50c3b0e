"""Error taxonomy raised by the account workflows.

Each class maps to exactly one HTTP status in :mod:`account_service.api.errors`.
Messages on authentication and conflict errors are deliberately uniform so a
caller cannot tell which account lookup or token check failed.
"""

from __future__ import annotations

from dataclasses import dataclass

DUPLICATE_ACCOUNT_MESSAGE = "User with that username or email already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
NOT_AUTHORIZED_MESSAGE = "Not authorized"


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single user-correctable problem tied to one request field."""

    field: str
    message: str


class AccountServiceError(Exception):
    """Base class for errors raised by the account service."""


class ValidationError(AccountServiceError):
    """One or more request fields failed validation."""

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("Validation failed")
        self.errors = list(errors)


class ConflictError(AccountServiceError):
    """A unique key (username or email) is already taken."""

    def __init__(self, message: str = DUPLICATE_ACCOUNT_MESSAGE) -> None:
        super().__init__(message)


class AuthenticationError(AccountServiceError):
    """Credentials or bearer token were rejected."""

    def __init__(self, message: str = NOT_AUTHORIZED_MESSAGE) -> None:
        super().__init__(message)


class InternalError(AccountServiceError):
    """Unexpected failure; details are logged and never returned to callers."""


class HashingError(InternalError):
    pass


class StoreError(InternalError):
    pass


class ConfigurationError(InternalError):
    pass
