"""Exception taxonomy raised by the account lifecycle and login workflows."""

from __future__ import annotations

from enum import Enum


class IdentityError(Exception):
    """Base class for every error the identity core surfaces to callers."""

    message: str = "identity error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(IdentityError):
    """Registration input broke a structural or policy rule."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class DuplicateError(IdentityError):
    """A uniqueness constraint rejected the write."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field.capitalize()} is already in use.")
        self.field = field


class HashingError(IdentityError):
    """The password hashing backend failed; never retried."""

    message = "password hashing failed"


class CredentialFailure(str, Enum):
    account_not_found = "account_not_found"
    wrong_credential = "wrong_credential"
    not_verified = "not_verified"


class CredentialError(IdentityError):
    """Login attempt rejected for the given reason."""

    def __init__(self, kind: CredentialFailure, message: str | None = None) -> None:
        super().__init__(message or kind.value.replace("_", " "))
        self.kind = kind


class TokenError(IdentityError):
    """Verification token unknown or already redeemed."""

    message = "invalid or already-used token"


class SessionError(IdentityError):
    """Session id is invalid, expired, or no longer maps to an account."""

    message = "session not found"


class TransportError(IdentityError):
    """The mailer could not hand the verification email to its transport."""

    message = "verification email could not be delivered"
