"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..domain.account import Account
from ..domain.service import AccountService

# auto_error=False so a missing header reaches our uniform 401 instead of FastAPI's
_bearer_scheme = HTTPBearer(auto_error=False)


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_current_account(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    service: AccountService = Depends(get_service),
) -> Account:
    """Authorization gate for protected routes.

    Verifies the ``Authorization: Bearer`` token, resolves its account and
    binds it to ``request.state.account``.
    """
    token = credentials.credentials if credentials else None
    account = service.authenticate(token)
    request.state.account = account
    return account
