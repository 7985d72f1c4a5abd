"""Registration input rules.

Rules are evaluated field by field in declaration order and the first broken
rule is reported, so clients can re-prompt for one problem at a time.
"""

from __future__ import annotations

import re
from typing import Iterable

from email_validator import EmailNotValidError, validate_email

from .contracts import RegistrationForm, RegistrationInput
from .errors import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
# bcrypt only considers the first 72 bytes of its input.
PASSWORD_MAX_BYTES = 72

DEFAULT_STRENGTH_PATTERN = r"^(?=.*\d)(?=.*[a-z])(?=.*[A-Z])(?!.*\s).{8,}$"

_USERNAME_RE = re.compile(r"[A-Za-z0-9]+")


def normalize_email(email: str) -> str:
    """Return the canonical form of a syntactically valid email address.

    Raises
    ------
    email_validator.EmailNotValidError
        When the address is malformed.
    """
    result = validate_email(email.strip(), check_deliverability=False)
    return result.normalized.lower()


class RegistrationValidator:
    """Validate and normalise registration forms.

    Parameters
    ----------
    strength_pattern:
        Optional regular expression every password must match. Empty disables
        the strength policy.
    allowed_tlds:
        Optional allow-list of top-level domains for email addresses.
    """

    def __init__(
        self,
        *,
        strength_pattern: str | None = None,
        allowed_tlds: Iterable[str] = (),
    ) -> None:
        self._strength_re = re.compile(strength_pattern) if strength_pattern else None
        self._allowed_tlds = tuple(tld.lower().lstrip(".") for tld in allowed_tlds)

    def validate(self, form: RegistrationForm) -> RegistrationInput:
        """Return the normalised input or raise :class:`ValidationError`."""
        email = self._check_email(form.email)
        username = self._check_username(form.username)
        password = self._check_password(form.password)
        if form.confirmation_password != password:
            raise ValidationError(
                "confirmation_password", "Confirmation password must match password."
            )
        return RegistrationInput(email=email, username=username, password=password)

    def _check_email(self, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValidationError("email", "Email is required.")
        try:
            email = normalize_email(value)
        except EmailNotValidError as exc:
            raise ValidationError("email", "Email must be a valid email.") from exc
        if self._allowed_tlds:
            tld = email.rsplit(".", 1)[-1]
            if tld not in self._allowed_tlds:
                allowed = ", ".join(self._allowed_tlds)
                raise ValidationError(
                    "email", f"Email must use one of the allowed domains: {allowed}."
                )
        return email

    def _check_username(self, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValidationError("username", "Username is required.")
        if not _USERNAME_RE.fullmatch(value):
            raise ValidationError(
                "username", "Username must only contain alpha-numeric characters."
            )
        if len(value) < USERNAME_MIN_LENGTH:
            raise ValidationError(
                "username", f"Username must be at least {USERNAME_MIN_LENGTH} characters long."
            )
        if len(value) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                "username", f"Username must be at most {USERNAME_MAX_LENGTH} characters long."
            )
        return value

    def _check_password(self, value: str | None) -> str:
        if not value:
            raise ValidationError("password", "Password is required.")
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValidationError(
                "password", f"Password must be at most {PASSWORD_MAX_BYTES} bytes long."
            )
        if self._strength_re is not None and not self._strength_re.match(value):
            raise ValidationError(
                "password",
                "Password must be at least 8 characters long and contain an uppercase letter, "
                "a lowercase letter and a number, with no spaces.",
            )
        return value
