"""Database repository for account records."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import NewAccountRecord
from .domain.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id    UUID PRIMARY KEY,
    username      TEXT NOT NULL,
    email         TEXT NOT NULL,
    secret_hash   TEXT NOT NULL,
    phone         TEXT,
    date_of_birth DATE,
    created_at    TIMESTAMPTZ NOT NULL,
    updated_at    TIMESTAMPTZ NOT NULL,
    CONSTRAINT accounts_username_key UNIQUE (username),
    CONSTRAINT accounts_email_key UNIQUE (email),
    CONSTRAINT accounts_updated_after_created CHECK (updated_at >= created_at)
)
"""

_COLUMNS = "account_id, username, email, secret_hash, phone, date_of_birth, created_at, updated_at"

# columns a save may touch; identity and timestamps are managed here
MUTABLE_FIELDS = frozenset({"email", "phone", "date_of_birth", "secret_hash"})


class AccountRepository:
    """Postgres-backed account persistence.

    Uniqueness of ``username`` and ``email`` is enforced by table constraints;
    any caller-side pre-check is advisory only.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the accounts table and its unique constraints if missing."""
        with self._pool.connection() as conn:
            conn.execute(SCHEMA_SQL)
            conn.commit()
        logger.info("accounts schema ensured")

    def create_account(self, record: NewAccountRecord) -> Account:
        """Insert a pre-hashed account record and return the stored aggregate."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO accounts ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            account_id,
                            record.username,
                            record.email,
                            record.secret_hash,
                            record.phone,
                            record.date_of_birth,
                            now,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            raise ConflictError() from exc
        except psycopg.Error as exc:
            raise StoreError("account insert failed") from exc
        return self._map_record(row)

    def find_by_username_or_email(
        self, *, username: str | None = None, email: str | None = None
    ) -> Account | None:
        """Return the first account matching any of the supplied keys."""
        clauses: list[str] = []
        params: list[Any] = []
        if username:
            clauses.append("username = %s")
            params.append(username)
        if email:
            clauses.append("email = %s")
            params.append(email)
        if not clauses:
            return None

        where_sql = " OR ".join(clauses)
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE {where_sql} LIMIT 1", params
        )

    def find_by_id(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        try:
            uuid.UUID(account_id)
        except (ValueError, TypeError, AttributeError):
            return None
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE account_id = %s", [account_id]
        )

    def save_fields(self, account_id: str, changes: dict[str, Any]) -> Account | None:
        """Persist only the columns in ``changes`` and refresh ``updated_at``.

        Columns not named in ``changes`` keep their stored values. Returns
        ``None`` when the account no longer exists.
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update fields: {sorted(unknown)}")

        assignments = [f"{column} = %s" for column in changes]
        params: list[Any] = list(changes.values())
        assignments.append("updated_at = GREATEST(%s, updated_at)")
        params.append(datetime.now(timezone.utc))
        params.append(account_id)

        query = f"""
            UPDATE accounts
            SET {", ".join(assignments)}
            WHERE account_id = %s
            RETURNING {_COLUMNS}
        """
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, params)
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            raise ConflictError() from exc
        except psycopg.Error as exc:
            raise StoreError("account update failed") from exc
        if not row:
            return None
        return self._map_record(row)

    def _fetch_one(self, query: str, params: list[Any]) -> Account | None:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, params)
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StoreError("account lookup failed") from exc
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            username=row[1],
            email=row[2],
            secret_hash=row[3],
            phone=row[4],
            date_of_birth=row[5],
            created_at=row[6],
            updated_at=row[7],
        )
