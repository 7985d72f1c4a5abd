"""Salted, cost-tunable password hashing backed by bcrypt."""

from __future__ import annotations

import logging
from functools import cached_property

import bcrypt

from ..domain.errors import HashingError

logger = logging.getLogger(__name__)

# bcrypt rejects longer inputs.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Bcrypt password hashing utility."""

    def __init__(self, rounds: int = 12) -> None:
        """Initialise with the bcrypt cost factor (log2 of the iteration count)."""
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt.

        Raises
        ------
        HashingError
            When salt generation or hashing fails. Callers must not retry.
        """
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        except (ValueError, TypeError, OSError) as exc:
            logger.error("password hashing failed: %s", type(exc).__name__)
            raise HashingError() from exc
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Return whether ``password`` matches the stored ``password_hash``."""
        if not password or not password_hash:
            return False
        candidate = password.encode("utf-8")
        if len(candidate) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(candidate, password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("stored password hash is malformed; treating as mismatch")
            return False

    @cached_property
    def dummy_hash(self) -> str:
        """Hash at the configured cost, checked against when no account matches."""
        return self.hash("account-identity-placeholder")
