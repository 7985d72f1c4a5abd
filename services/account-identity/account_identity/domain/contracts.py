"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class RegistrationForm:
    """Raw registration input exactly as submitted by the client."""

    email: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    confirmation_password: str | None = field(default=None, repr=False)


@dataclass(slots=True, frozen=True)
class RegistrationInput:
    """Validated, normalised registration input."""

    email: str
    username: str
    password: str = field(repr=False)


@dataclass(slots=True, frozen=True)
class NewAccountRecord:
    """Values the store persists for a freshly registered, unverified account."""

    email: str
    username: str
    password_hash: str = field(repr=False)
    verification_token: str = field(repr=False)
