"""Signed session identifiers that reference an authenticated account."""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.account import Account
from ..domain.errors import SessionError
from ..repository import AccountRepository

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class SessionCodec:
    """Convert principals to session ids and back.

    The session id carries only the immutable account id; :meth:`decode`
    always re-reads the account so later state changes are observed.
    """

    def __init__(
        self,
        repository: AccountRepository,
        *,
        secret: str | None = None,
        issuer: str | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self._repository = repository
        self._secret = secret or settings.session_secret
        self._issuer = issuer or settings.session_issuer
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds

    def encode(self, account: Account) -> str:
        """Create a signed session id for the given principal.

        Parameters
        ----------
        account:
            Authenticated account; its ``account_id`` becomes the ``sub`` claim.

        Returns
        -------
        str
            The encoded HS256 token.
        """
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": account.account_id,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, session_id: str) -> Account:
        """Resolve a session id to the current account record.

        Raises
        ------
        SessionError
            When the signature, issuer or expiry check fails, or the account
            no longer exists.
        """
        try:
            claims = jwt.decode(
                session_id,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["sub", "exp", "iss"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("rejected session id: %s", type(exc).__name__)
            raise SessionError() from exc

        account = self._repository.find_by_id(claims["sub"])
        if account is None:
            raise SessionError()
        return account
