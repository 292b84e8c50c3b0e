from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone

import pytest
from psycopg import errors as pg_errors

from account_service.domain.contracts import NewAccountRecord
from account_service.domain.errors import ConflictError, StoreError
from account_service.repository import AccountRepository

ACCOUNT_ID = "5f0c1d2e-3a4b-4c5d-8e9f-0a1b2c3d4e5f"


class FakeCursor:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, query, params=None) -> None:
        self._pool.executed.append((query, list(params or [])))
        if self._pool.error is not None:
            raise self._pool.error

    def fetchone(self):
        return self._pool.row


class FakeConnection:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    def cursor(self, **kwargs) -> FakeCursor:
        return FakeCursor(self._pool)

    def commit(self) -> None:
        self._pool.commits += 1


class FakePool:
    """Records statements instead of talking to Postgres."""

    def __init__(self, row=None, error: Exception | None = None) -> None:
        self.row = row
        self.error = error
        self.executed: list[tuple[str, list]] = []
        self.commits = 0

    @contextmanager
    def connection(self):
        yield FakeConnection(self)


def _row(**overrides):
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    values = {
        "account_id": ACCOUNT_ID,
        "username": "alice",
        "email": "a@x.com",
        "secret_hash": "$2b$04$hash",
        "phone": None,
        "date_of_birth": None,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return tuple(values.values())


def test_save_fields_rejects_columns_outside_the_whitelist():
    pool = FakePool()
    repository = AccountRepository(pool)

    with pytest.raises(ValueError, match="username"):
        repository.save_fields(ACCOUNT_ID, {"username": "mallory"})
    assert pool.executed == []


def test_save_fields_sets_only_named_columns_and_refreshes_updated_at():
    pool = FakePool(row=_row(phone="555-0100-22"))
    repository = AccountRepository(pool)

    account = repository.save_fields(ACCOUNT_ID, {"phone": "555-0100-22"})

    query, params = pool.executed[0]
    set_clause = query.split("SET", 1)[1].split("WHERE", 1)[0]
    assert "phone = %s" in set_clause
    assert "updated_at = GREATEST(%s, updated_at)" in set_clause
    for column in ("email", "date_of_birth", "secret_hash", "username"):
        assert column not in set_clause
    assert params[0] == "555-0100-22"
    assert params[-1] == ACCOUNT_ID
    assert pool.commits == 1
    assert account.phone == "555-0100-22"


def test_save_fields_maps_unique_violation_to_conflict():
    repository = AccountRepository(FakePool(error=pg_errors.UniqueViolation("duplicate key")))

    with pytest.raises(ConflictError):
        repository.save_fields(ACCOUNT_ID, {"email": "b@x.com"})


def test_create_account_maps_unique_violation_to_conflict():
    repository = AccountRepository(FakePool(error=pg_errors.UniqueViolation("duplicate key")))

    with pytest.raises(ConflictError):
        repository.create_account(
            NewAccountRecord(username="alice", email="a@x.com", secret_hash="$2b$04$hash")
        )


def test_other_driver_errors_become_store_errors():
    repository = AccountRepository(FakePool(error=pg_errors.OperationalError("connection refused")))

    with pytest.raises(StoreError):
        repository.find_by_username_or_email(username="alice")


def test_find_by_id_ignores_malformed_identifiers():
    pool = FakePool()
    assert AccountRepository(pool).find_by_id("not-a-uuid") is None
    assert pool.executed == []


def test_rows_map_onto_the_account_aggregate():
    pool = FakePool(row=_row(date_of_birth=date(1990, 4, 1)))

    account = AccountRepository(pool).find_by_id(ACCOUNT_ID)

    assert account.account_id == ACCOUNT_ID
    assert account.date_of_birth == date(1990, 4, 1)
    assert account.updated_at >= account.created_at
