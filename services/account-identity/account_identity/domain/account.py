from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AccountState(str, Enum):
    pending_verification = "pending_verification"
    active = "active"


@dataclass(slots=True)
class Account:
    """Aggregate root for a self-registered user identity."""

    account_id: str
    email: str
    username: str
    password_hash: str = field(repr=False)
    created_at: datetime
    updated_at: datetime
    active: bool = False
    verification_token: str | None = field(default=None, repr=False)

    @property
    def state(self) -> AccountState:
        """Return the lifecycle state derived from the activation flag."""
        return AccountState.active if self.active else AccountState.pending_verification
