from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from account_identity.domain.contracts import NewAccountRecord
from account_identity.domain.errors import TokenError
from account_identity.security.verification import VerificationTokenIssuer


@pytest.fixture
def issuer(repository) -> VerificationTokenIssuer:
    return VerificationTokenIssuer(repository)


def _pending_account(repository, issuer, username="alice1"):
    token = issuer.issue()
    account = repository.create_account(
        NewAccountRecord(
            email=f"{username}@x.com",
            username=username,
            password_hash="$2b$04$placeholder",
            verification_token=token,
        )
    )
    return account, token


def test_issued_tokens_are_unpredictable(issuer):
    tokens = {issuer.issue() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(token) >= 40 for token in tokens)


def test_redeem_activates_and_clears_token(repository, issuer):
    account, token = _pending_account(repository, issuer)

    activated = issuer.redeem(token)

    assert activated.account_id == account.account_id
    assert activated.active is True
    assert activated.verification_token is None
    stored = repository.find_by_id(account.account_id)
    assert stored.active is True
    assert stored.verification_token is None


def test_second_redemption_reports_not_found(repository, issuer):
    _, token = _pending_account(repository, issuer)
    issuer.redeem(token)

    with pytest.raises(TokenError):
        issuer.redeem(token)


@pytest.mark.parametrize("token", ["", "   ", "unknown-token"])
def test_unknown_or_blank_tokens_are_rejected(repository, issuer, token):
    _pending_account(repository, issuer)
    with pytest.raises(TokenError):
        issuer.redeem(token)


def test_concurrent_redemptions_activate_once(repository, issuer):
    _, token = _pending_account(repository, issuer)

    def attempt():
        try:
            issuer.redeem(token)
            return "activated"
        except TokenError:
            return "rejected"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(8)))

    assert outcomes.count("activated") == 1
    assert outcomes.count("rejected") == 7
