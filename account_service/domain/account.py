from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user and their profile fields."""

    account_id: str
    username: str
    email: str
    secret_hash: str
    created_at: datetime
    updated_at: datetime
    phone: str | None = None
    date_of_birth: date | None = None

    def __repr__(self) -> str:
        # keep the hash out of logs and tracebacks
        return f"Account(account_id={self.account_id!r}, username={self.username!r})"
