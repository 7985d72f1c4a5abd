from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from account_identity.api import routes
from account_identity.api.errors import register_exception_handlers
from account_identity.domain.account import Account
from account_identity.domain.contracts import NewAccountRecord
from account_identity.domain.errors import DuplicateError, TransportError
from account_identity.domain.service import AccountService
from account_identity.domain.validation import RegistrationValidator
from account_identity.security.passwords import PasswordHasher
from account_identity.security.sessions import SessionCodec

TEST_ROUNDS = 4
SESSION_SECRET = "test-session-secret-at-least-32-bytes"


class FakeRepository:
    """In-memory repository mimicking the Postgres constraints and conditional update."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()

    def create_account(self, record: NewAccountRecord) -> Account:
        with self._lock:
            for existing in self._accounts.values():
                if existing.email == record.email:
                    raise DuplicateError("email")
                if existing.username == record.username:
                    raise DuplicateError("username")
            now = datetime.now(timezone.utc)
            account = Account(
                account_id=str(uuid.uuid4()),
                email=record.email,
                username=record.username,
                password_hash=record.password_hash,
                created_at=now,
                updated_at=now,
                active=False,
                verification_token=record.verification_token,
            )
            self._accounts[account.account_id] = account
            return replace(account)

    def find_by_email(self, email: str) -> Account | None:
        for account in self._accounts.values():
            if account.email == email:
                return replace(account)
        return None

    def find_by_token(self, token: str) -> Account | None:
        for account in self._accounts.values():
            if not account.active and account.verification_token == token:
                return replace(account)
        return None

    def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return replace(account) if account else None

    def activate_and_clear_token(self, account_id: str, token: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None or account.active or account.verification_token != token:
                return None
            account.active = True
            account.verification_token = None
            account.updated_at = datetime.now(timezone.utc)
            return replace(account)


class RecordingMailer:
    """Mailer double that keeps every token it was asked to deliver."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send_verification_email(self, to_address: str, token: str) -> None:
        if self.fail:
            raise TransportError()
        self.sent.append((to_address, token))

    def token_for(self, address: str) -> str:
        for to_address, token in reversed(self.sent):
            if to_address == address:
                return token
        raise KeyError(address)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def sessions(repository) -> SessionCodec:
    return SessionCodec(repository, secret=SESSION_SECRET, issuer="test-issuer", ttl_seconds=300)


@pytest.fixture
def service(repository, mailer, hasher, sessions) -> AccountService:
    return AccountService(
        repository,
        mailer,
        hasher=hasher,
        validator=RegistrationValidator(),
        sessions=sessions,
    )


@pytest.fixture
def api_client(service, mailer):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(routes.router)
    app.state.account_service = service

    with TestClient(app) as client:
        yield client, mailer
