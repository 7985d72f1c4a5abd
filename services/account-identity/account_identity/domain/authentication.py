"""Login state machine: existence, then credential, then verification status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from email_validator import EmailNotValidError

from .account import Account
from .errors import CredentialError, CredentialFailure
from .validation import normalize_email
from ..repository import AccountRepository
from ..security.passwords import PasswordHasher

logger = logging.getLogger(__name__)

_MESSAGES = {
    CredentialFailure.account_not_found: "Account not found.",
    CredentialFailure.wrong_credential: "Incorrect password.",
    CredentialFailure.not_verified: "You must first verify your email address.",
}
_UNIFIED_MESSAGE = "Invalid email or password."


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful login carrying the authenticated principal."""

    principal: Account


@dataclass(frozen=True, slots=True)
class Err:
    """Rejected login with the reason and the caller-facing message."""

    kind: CredentialFailure
    message: str

    def to_exception(self) -> CredentialError:
        return CredentialError(self.kind, self.message)


AuthenticationResult = Union[Ok, Err]


class AuthenticationService:
    """Authenticate email/password pairs against stored accounts."""

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        *,
        unify_errors: bool = False,
    ) -> None:
        """Store collaborators.

        Parameters
        ----------
        unify_errors:
            Report unknown accounts and wrong passwords with one message so
            responses do not disclose which emails are registered.
        """
        self._repository = repository
        self._hasher = hasher
        self._unify_errors = unify_errors

    def authenticate(self, email: str, password: str) -> AuthenticationResult:
        """Run one login attempt; every branch is terminal."""
        account = self._lookup(email)
        if account is None:
            # Spend the same bcrypt work as a real check.
            self._hasher.verify(password, self._hasher.dummy_hash)
            return self._fail(CredentialFailure.account_not_found)

        if not self._hasher.verify(password, account.password_hash):
            logger.info("login rejected for account %s: wrong credential", account.account_id)
            return self._fail(CredentialFailure.wrong_credential)

        if not account.active:
            logger.info("login rejected for account %s: not verified", account.account_id)
            return self._fail(CredentialFailure.not_verified)

        logger.info("account %s authenticated", account.account_id)
        return Ok(principal=account)

    def _lookup(self, email: str) -> Account | None:
        if not email:
            return None
        try:
            normalized = normalize_email(email)
        except EmailNotValidError:
            return None
        return self._repository.find_by_email(normalized)

    def _fail(self, kind: CredentialFailure) -> Err:
        message = _MESSAGES[kind]
        if self._unify_errors and kind is not CredentialFailure.not_verified:
            message = _UNIFIED_MESSAGE
        return Err(kind=kind, message=message)
