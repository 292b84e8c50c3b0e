"""HTTP route definitions for the account service."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import AliasChoices, BaseModel, Field

from ..domain.account import Account
from ..domain.contracts import (
    AuthResult,
    LoginInput,
    ProfileUpdateInput,
    RegistrationInput,
)
from ..domain.service import AccountService
from .dependencies import get_current_account, get_service

router = APIRouter(prefix="/api")

_PASSWORD_ALIASES = AliasChoices("password", "secret")
_DOB_ALIASES = AliasChoices("dob", "dateOfBirth")


class RegisterRequest(BaseModel):
    """Registration payload.

    Fields are untyped so that wrongly typed values reach the service's field
    rules and are reported alongside every other invalid field.
    """

    username: Any = None
    password: Any = Field(default=None, validation_alias=_PASSWORD_ALIASES)
    email: Any = None
    phone: Any = None
    dob: Any = Field(default=None, validation_alias=_DOB_ALIASES)


class LoginRequest(BaseModel):
    """Login payload; either ``username`` or ``email`` identifies the account."""

    username: Any = None
    email: Any = None
    password: Any = Field(default=None, validation_alias=_PASSWORD_ALIASES)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; fields left out of the body stay unchanged."""

    email: Any = None
    phone: Any = None
    dob: Any = Field(default=None, validation_alias=_DOB_ALIASES)

    def to_input(self) -> ProfileUpdateInput:
        provided = self.model_fields_set
        payload = ProfileUpdateInput()
        if "email" in provided:
            payload.email = self.email
        if "phone" in provided:
            payload.phone = self.phone
        if "dob" in provided:
            payload.date_of_birth = self.dob
        return payload


class PasswordChangeRequest(BaseModel):
    current_password: Any = Field(
        default=None, validation_alias=AliasChoices("currentPassword", "current_password")
    )
    new_password: Any = Field(
        default=None, validation_alias=AliasChoices("newPassword", "new_password")
    )


class AuthResponse(BaseModel):
    """Account summary plus bearer token; never carries the password hash."""

    id: str
    username: str
    email: str
    token: str

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            id=result.account.account_id,
            username=result.account.username,
            email=result.account.email,
            token=result.token,
        )


class ProfileResponse(BaseModel):
    """Serialised profile view of an `Account` aggregate."""

    id: str
    username: str
    email: str
    phone: Any = None
    dob: date | None = None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    @classmethod
    def from_domain(cls, account: Account) -> "ProfileResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.account_id,
            username=account.username,
            email=account.email,
            phone=account.phone,
            dob=account.date_of_birth,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


@router.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Create an account and return it with a bearer token."""
    result = service.register(
        RegistrationInput(
            username=payload.username,
            password=payload.password,
            email=payload.email,
            phone=payload.phone,
            date_of_birth=payload.dob,
        )
    )
    return AuthResponse.from_result(result)


@router.post("/auth/login", response_model=AuthResponse, tags=["auth"])
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Exchange a username or email plus password for a bearer token."""
    result = service.login(
        LoginInput(
            username=payload.username,
            email=payload.email,
            password=payload.password,
        )
    )
    return AuthResponse.from_result(result)


@router.get("/profile", response_model=ProfileResponse, tags=["profile"])
def get_profile(account: Account = Depends(get_current_account)) -> ProfileResponse:
    """Return the authenticated account's profile."""
    return ProfileResponse.from_domain(account)


@router.put("/profile", response_model=ProfileResponse, tags=["profile"])
def update_profile(
    payload: ProfileUpdateRequest,
    account: Account = Depends(get_current_account),
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    """Apply a partial update to the authenticated account's profile."""
    updated = service.update_profile(account, payload.to_input())
    return ProfileResponse.from_domain(updated)


@router.put(
    "/profile/password",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["profile"],
)
def change_password(
    payload: PasswordChangeRequest,
    account: Account = Depends(get_current_account),
    service: AccountService = Depends(get_service),
) -> Response:
    """Replace the authenticated account's password."""
    service.change_password(account, payload.current_password, payload.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
