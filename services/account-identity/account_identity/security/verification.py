"""Single-use email verification tokens."""

from __future__ import annotations

import logging
import secrets

from ..domain.account import Account
from ..domain.errors import TokenError
from ..repository import AccountRepository

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class VerificationTokenIssuer:
    """Issue verification tokens and redeem them against the account store."""

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    def issue(self) -> str:
        """Return a new unpredictable, URL-safe token."""
        return secrets.token_urlsafe(TOKEN_BYTES)

    def redeem(self, token: str) -> Account:
        """Activate the account holding ``token`` and clear the token.

        The activation is a single conditional update on the token still being
        present, so concurrent redemptions of one token activate exactly once.

        Raises
        ------
        TokenError
            When no pending account holds the token, including when it was
            already redeemed.
        """
        if not token or not token.strip():
            raise TokenError()
        account = self._repository.find_by_token(token)
        if account is None:
            raise TokenError()
        activated = self._repository.activate_and_clear_token(account.account_id, token)
        if activated is None:
            logger.info("verification token for account %s lost a redemption race", account.account_id)
            raise TokenError()
        logger.info("account %s verified", activated.account_id)
        return activated
