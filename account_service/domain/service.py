"""Account service orchestrating validation, hashing, persistence and tokens."""

from __future__ import annotations

import logging
from typing import Any

from prometheus_client import Counter

from . import validation as rules
from .account import Account
from .contracts import (
    AuthResult,
    LoginInput,
    NewAccountRecord,
    ProfileUpdateInput,
    RegistrationInput,
)
from .errors import (
    INVALID_CREDENTIALS_MESSAGE,
    NOT_AUTHORIZED_MESSAGE,
    AuthenticationError,
    ConflictError,
)
from ..repository import AccountRepository
from ..security.passwords import SecretHasher
from ..security.tokens import ExpiredTokenError, TokenError, TokenIssuer

logger = logging.getLogger(__name__)

AUTH_EVENTS = Counter(
    "account_auth_events_total",
    "Registration, login and bearer-token outcomes.",
    ["event", "outcome"],
)


class AccountService:
    """Account workflows backed by the account repository."""

    def __init__(
        self,
        repository: AccountRepository,
        hasher: SecretHasher,
        tokens: TokenIssuer,
    ) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens

    def register(self, payload: RegistrationInput) -> AuthResult:
        """Create an account and return it together with a fresh token.

        All field errors are reported together before the store is touched.
        A taken username or email yields one generic conflict that does not
        say which of the two collided.
        """
        errors = rules.FieldErrors()
        username = errors.check("username", rules.username, payload.username)
        password = errors.check("password", rules.password, payload.password)
        email = errors.check("email", rules.email, payload.email)
        phone = errors.check("phone", rules.optional_phone, payload.phone)
        date_of_birth = errors.check("dob", rules.optional_date_of_birth, payload.date_of_birth)
        errors.raise_if_any()

        existing = self._repository.find_by_username_or_email(username=username, email=email)
        if existing is not None:
            AUTH_EVENTS.labels(event="register", outcome="conflict").inc()
            raise ConflictError()

        record = NewAccountRecord(
            username=username,
            email=email,
            secret_hash=self._hasher.hash(password),
            phone=phone,
            date_of_birth=date_of_birth,
        )
        try:
            account = self._repository.create_account(record)
        except ConflictError:
            # lost a race with a concurrent registration; the unique constraint decided
            AUTH_EVENTS.labels(event="register", outcome="conflict").inc()
            raise

        AUTH_EVENTS.labels(event="register", outcome="success").inc()
        logger.info("registered account %s", account.account_id)
        return AuthResult(account=account, token=self._tokens.issue(account.account_id))

    def login(self, payload: LoginInput) -> AuthResult:
        """Check credentials and issue a token.

        An unknown identifier and a wrong password fail identically, and the
        unknown case still pays for a full bcrypt verification.
        """
        errors = rules.FieldErrors()
        password = payload.password if isinstance(payload.password, str) else None
        if not password:
            errors.add("password", "Password is required")
        username = None
        if payload.username:
            username = errors.check("username", rules.username, payload.username)
        email = None
        if payload.email:
            email = errors.check("email", rules.email, payload.email)
        if not payload.username and not payload.email:
            errors.add("username", "Username or email is required")
        errors.raise_if_any()

        if username:
            account = self._repository.find_by_username_or_email(username=username)
        else:
            account = self._repository.find_by_username_or_email(email=email)

        if account is None:
            self._hasher.verify_dummy(password)
            verified = False
        else:
            verified = self._hasher.verify(password, account.secret_hash)

        if not verified:
            AUTH_EVENTS.labels(event="login", outcome="failure").inc()
            logger.info("login rejected")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        AUTH_EVENTS.labels(event="login", outcome="success").inc()
        logger.info("login succeeded for account %s", account.account_id)
        return AuthResult(account=account, token=self._tokens.issue(account.account_id))

    def authenticate(self, token: str | None) -> Account:
        """Resolve a bearer token to its account or fail with "Not authorized".

        Missing, malformed, tampered and expired tokens, and tokens for
        accounts that no longer exist, all raise the same error.
        """
        if not token:
            logger.debug("bearer token missing")
            AUTH_EVENTS.labels(event="token", outcome="missing").inc()
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE)

        try:
            account_id = self._tokens.verify(token)
        except ExpiredTokenError:
            logger.debug("bearer token expired")
            AUTH_EVENTS.labels(event="token", outcome="expired").inc()
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE) from None
        except TokenError as exc:
            logger.debug("bearer token rejected: %s", exc)
            AUTH_EVENTS.labels(event="token", outcome="invalid").inc()
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE) from None

        account = self._repository.find_by_id(account_id)
        if account is None:
            logger.debug("bearer token for unknown account %s", account_id)
            AUTH_EVENTS.labels(event="token", outcome="unknown_account").inc()
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE)
        return account

    def update_profile(self, account: Account, payload: ProfileUpdateInput) -> Account:
        """Apply a partial update to the account's optional profile fields.

        Absent fields are left alone, empty values clear ``phone`` and
        ``dob``. Nothing is written unless every provided field is valid.
        """
        provided = payload.provided()
        errors = rules.FieldErrors()
        changes: dict[str, Any] = {}

        if "email" in provided:
            email = errors.check("email", rules.email, provided["email"])
            if email is not None and email != account.email:
                changes["email"] = email
        if "phone" in provided:
            phone = errors.check("phone", rules.optional_phone, provided["phone"])
            if phone != account.phone:
                changes["phone"] = phone
        if "date_of_birth" in provided:
            date_of_birth = errors.check(
                "dob", rules.optional_date_of_birth, provided["date_of_birth"]
            )
            if date_of_birth != account.date_of_birth:
                changes["date_of_birth"] = date_of_birth
        errors.raise_if_any()

        if not changes:
            return account

        saved = self._repository.save_fields(account.account_id, changes)
        if saved is None:
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE)
        logger.info("updated profile %s fields=%s", saved.account_id, sorted(changes))
        return saved

    def change_password(self, account: Account, current_password: Any, new_password: Any) -> None:
        """Replace the stored hash after checking the current password."""
        errors = rules.FieldErrors()
        if not isinstance(current_password, str) or not current_password:
            errors.add("currentPassword", "Current password is required")
        new_password = errors.check("newPassword", rules.password, new_password)
        errors.raise_if_any()

        if not self._hasher.verify(current_password, account.secret_hash):
            AUTH_EVENTS.labels(event="password_change", outcome="failure").inc()
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        saved = self._repository.save_fields(
            account.account_id, {"secret_hash": self._hasher.hash(new_password)}
        )
        if saved is None:
            raise AuthenticationError(NOT_AUTHORIZED_MESSAGE)
        AUTH_EVENTS.labels(event="password_change", outcome="success").inc()
        logger.info("password changed for account %s", account.account_id)
