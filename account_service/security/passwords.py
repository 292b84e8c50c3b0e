"""Password hashing with bcrypt."""

from __future__ import annotations

import logging
import secrets

import bcrypt

from ..domain.errors import HashingError

logger = logging.getLogger(__name__)


class SecretHasher:
    """Salted, adaptive-cost password hashing.

    Two calls to :meth:`hash` with the same input return different strings;
    :meth:`verify` accepts either of them.

    Parameters
    ----------
    rounds:
        bcrypt work factor (log2 of the iteration count). 10 matches the
        cost the service has always used; tests drop it to 4.
    """

    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds
        # stand-in hash for logins against unknown accounts
        self._dummy_hash = self.hash(secrets.token_urlsafe(16))

    def hash(self, plaintext: str) -> str:
        """Return the bcrypt hash of ``plaintext``.

        Raises
        ------
        HashingError
            If bcrypt rejects the input or fails internally.
        """
        try:
            salt = bcrypt.gensalt(rounds=self._rounds)
            hashed = bcrypt.hashpw(plaintext.encode("utf-8"), salt)
        except (ValueError, TypeError) as exc:
            raise HashingError("password hashing failed") from exc
        return hashed.decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Constant-time comparison of ``plaintext`` against a stored hash."""
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            logger.warning("bcrypt rejected a password or stored hash during verification")
            return False

    def verify_dummy(self, plaintext: str) -> bool:
        """Spend the same work as :meth:`verify` when there is no account to check."""
        self.verify(plaintext, self._dummy_hash)
        return False
