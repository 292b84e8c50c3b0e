"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

import secrets
import time
from typing import Any

import jwt
from jwt.utils import base64url_decode, base64url_encode

from ..domain.errors import ConfigurationError

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 7 * 24 * 3600


class TokenError(Exception):
    """Base class for bearer token verification failures."""


class InvalidTokenError(TokenError):
    """Token is malformed, tampered with, or was not issued by this service."""


class ExpiredTokenError(TokenError):
    """Token was valid once but its ``exp`` claim has passed."""


class TokenIssuer:
    """Stateless HS256 token issuer bound to one signing key.

    There is no server-side session table: a token stays valid until it
    expires.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        issuer: str = "account-service",
    ) -> None:
        if not secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._issuer = issuer

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, account_id: str, *, now: int | None = None) -> str:
        """Create a signed JWT asserting ``account_id``.

        Parameters
        ----------
        account_id:
            Account identifier embedded in the ``sub`` claim.
        now:
            Issue time as a Unix timestamp; defaults to the current time.

        Returns
        -------
        str
            The encoded token.
        """

        issued_at = int(time.time()) if now is None else now
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": account_id,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """Verify ``token`` and return the account identifier it carries.

        Raises
        ------
        ExpiredTokenError
            The signature is good but the token has expired.
        InvalidTokenError
            Anything else: bad structure, bad signature, wrong issuer or
            missing claims.
        """

        _require_canonical_signature(token)
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError("token expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError("token subject missing")
        return subject


def _require_canonical_signature(token: str) -> None:
    """Reject signatures whose unused trailing base64 bits were altered.

    The last character of an HS256 signature carries two padding bits that
    decoding ignores, so without this check a one-character edit there would
    still verify.
    """
    parts = token.split(".") if isinstance(token, str) else []
    if len(parts) != 3 or not parts[2]:
        raise InvalidTokenError("token structure invalid")
    signature = parts[2].encode("ascii", errors="replace")
    try:
        canonical = base64url_encode(base64url_decode(signature))
    except (ValueError, TypeError) as exc:
        raise InvalidTokenError("token signature invalid") from exc
    if canonical != signature:
        raise InvalidTokenError("token signature invalid")
