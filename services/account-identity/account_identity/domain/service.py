"""Account service orchestrating registration, verification and login."""

from __future__ import annotations

import logging

from .account import Account
from .authentication import AuthenticationResult, AuthenticationService, Ok
from .contracts import NewAccountRecord, RegistrationForm
from .errors import DuplicateError, TokenError, TransportError, ValidationError
from .validation import RegistrationValidator
from .. import metrics
from ..mail import Mailer
from ..repository import AccountRepository
from ..security.passwords import PasswordHasher
from ..security.sessions import SessionCodec
from ..security.verification import VerificationTokenIssuer

logger = logging.getLogger(__name__)


class AccountService:
    """Account workflows backed by the account store."""

    def __init__(
        self,
        repository: AccountRepository,
        mailer: Mailer,
        *,
        hasher: PasswordHasher,
        validator: RegistrationValidator,
        sessions: SessionCodec,
        unify_login_errors: bool = False,
    ) -> None:
        """Store dependencies used to orchestrate persistence, hashing and mail."""
        self._repository = repository
        self._mailer = mailer
        self._hasher = hasher
        self._validator = validator
        self._sessions = sessions
        self._tokens = VerificationTokenIssuer(repository)
        self._authenticator = AuthenticationService(
            repository, hasher, unify_errors=unify_login_errors
        )

    def register(self, form: RegistrationForm) -> Account:
        """Validate the form, store a pending account and mail its token.

        The account is created before the email is sent. When delivery fails
        the account remains pending and :class:`TransportError` propagates.

        Raises
        ------
        ValidationError
            First broken input rule.
        DuplicateError
            Email or username already registered.
        HashingError
            The hashing backend failed.
        TransportError
            The verification email could not be handed to the transport.
        """
        try:
            payload = self._validator.validate(form)
        except ValidationError as exc:
            metrics.REGISTRATIONS.labels(outcome="invalid").inc()
            logger.info("registration rejected on field %s", exc.field)
            raise

        record = NewAccountRecord(
            email=payload.email,
            username=payload.username,
            password_hash=self._hasher.hash(payload.password),
            verification_token=self._tokens.issue(),
        )
        try:
            account = self._repository.create_account(record)
        except DuplicateError as exc:
            metrics.REGISTRATIONS.labels(outcome="duplicate").inc()
            logger.info("registration rejected: %s already in use", exc.field)
            raise

        logger.info("account %s registered as %s", account.account_id, account.username)
        try:
            self._mailer.send_verification_email(account.email, record.verification_token)
        except TransportError:
            metrics.REGISTRATIONS.labels(outcome="mail_failed").inc()
            logger.warning("account %s created but verification email failed", account.account_id)
            raise
        metrics.REGISTRATIONS.labels(outcome="created").inc()
        return account

    def verify(self, token: str) -> Account:
        """Redeem a verification token, activating its account."""
        try:
            account = self._tokens.redeem(token)
        except TokenError:
            metrics.VERIFICATIONS.labels(outcome="rejected").inc()
            raise
        metrics.VERIFICATIONS.labels(outcome="activated").inc()
        return account

    def authenticate(self, email: str, password: str) -> AuthenticationResult:
        """Run the login state machine for an email/password pair."""
        result = self._authenticator.authenticate(email, password)
        outcome = "success" if isinstance(result, Ok) else result.kind.value
        metrics.LOGINS.labels(outcome=outcome).inc()
        return result

    def open_session(self, account: Account) -> str:
        """Return the session id for an authenticated principal."""
        return self._sessions.encode(account)

    def resolve_session(self, session_id: str) -> Account:
        """Return the current account behind a session id."""
        return self._sessions.decode(session_id)

    def get_account(self, account_id: str) -> Account | None:
        """Retrieve an account by identifier."""
        return self._repository.find_by_id(account_id)
