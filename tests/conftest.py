from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from account_service.api import routes
from account_service.api.errors import register_error_handlers
from account_service.domain.account import Account
from account_service.domain.contracts import NewAccountRecord
from account_service.domain.errors import ConflictError
from account_service.domain.service import AccountService
from account_service.security.passwords import SecretHasher
from account_service.security.tokens import TokenIssuer

class FakeRepository:
    """In-memory repository mimicking the Postgres unique constraints."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self.saves: list[tuple[str, dict[str, Any]]] = []

    def create_account(self, record: NewAccountRecord) -> Account:
        for existing in self._accounts.values():
            if existing.username == record.username or existing.email == record.email:
                raise ConflictError()
        now = datetime.now(timezone.utc)
        account = Account(
            account_id=str(uuid.uuid4()),
            username=record.username,
            email=record.email,
            secret_hash=record.secret_hash,
            phone=record.phone,
            date_of_birth=record.date_of_birth,
            created_at=now,
            updated_at=now,
        )
        self._accounts[account.account_id] = account
        return dataclasses.replace(account)

    def find_by_username_or_email(
        self, *, username: str | None = None, email: str | None = None
    ) -> Account | None:
        for account in self._accounts.values():
            if (username and account.username == username) or (email and account.email == email):
                return dataclasses.replace(account)
        return None

    def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return dataclasses.replace(account) if account else None

    def save_fields(self, account_id: str, changes: dict[str, Any]) -> Account | None:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        new_email = changes.get("email")
        if new_email and any(
            other.email == new_email and other.account_id != account_id
            for other in self._accounts.values()
        ):
            raise ConflictError()
        self.saves.append((account_id, dict(changes)))
        updated = dataclasses.replace(
            account, **changes, updated_at=max(datetime.now(timezone.utc), account.updated_at)
        )
        self._accounts[account_id] = updated
        return dataclasses.replace(updated)

    def delete(self, account_id: str) -> None:
        self._accounts.pop(account_id, None)

    def stored(self, account_id: str) -> Account:
        return self._accounts[account_id]


@pytest.fixture(scope="session")
def hasher() -> SecretHasher:
    # minimum bcrypt cost keeps the suite fast
    return SecretHasher(rounds=4)


@pytest.fixture
def signing_key() -> str:
    return "test-signing-key-0123456789abcdef0123456789"


@pytest.fixture
def tokens(signing_key) -> TokenIssuer:
    return TokenIssuer(signing_key, ttl_seconds=3600, issuer="account-service-test")


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository, hasher, tokens) -> AccountService:
    return AccountService(repository, hasher, tokens)


@pytest.fixture
def api_client(service):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    register_error_handlers(app)
    app.state.account_service = service

    with TestClient(app) as client:
        yield client
