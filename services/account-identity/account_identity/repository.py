"""Database repository for account identity data."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import NewAccountRecord
from .domain.errors import DuplicateError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id          TEXT PRIMARY KEY,
    email               TEXT NOT NULL,
    username            TEXT NOT NULL,
    password_hash       TEXT NOT NULL CHECK (password_hash <> ''),
    active              BOOLEAN NOT NULL DEFAULT FALSE,
    verification_token  TEXT,
    created_at          TIMESTAMPTZ NOT NULL,
    updated_at          TIMESTAMPTZ NOT NULL,
    CONSTRAINT accounts_email_key UNIQUE (email),
    CONSTRAINT accounts_username_key UNIQUE (username),
    CONSTRAINT accounts_token_only_when_pending CHECK (NOT (active AND verification_token IS NOT NULL))
);
CREATE UNIQUE INDEX IF NOT EXISTS accounts_verification_token_idx
    ON accounts (verification_token) WHERE verification_token IS NOT NULL;
"""

_COLUMNS = (
    "account_id, email, username, password_hash, active, verification_token, created_at, updated_at"
)

# Unique constraint name -> offending field reported to the caller.
_CONSTRAINT_FIELDS = {
    "accounts_email_key": "email",
    "accounts_username_key": "username",
}


class AccountRepository:
    """Postgres-backed account persistence.

    Uniqueness of email and username is enforced by table constraints, so
    concurrent registrations cannot both succeed.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the accounts table and its constraints when missing."""
        with self._pool.connection() as conn:
            conn.execute(SCHEMA_SQL)
            conn.commit()

    def create_account(self, record: NewAccountRecord) -> Account:
        """Insert a pending account.

        Raises
        ------
        DuplicateError
            When the email or username is already taken.
        """
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO accounts ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, FALSE, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            account_id,
                            record.email,
                            record.username,
                            record.password_hash,
                            record.verification_token,
                            now,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except errors.UniqueViolation as exc:
            constraint = exc.diag.constraint_name or ""
            field = _CONSTRAINT_FIELDS.get(constraint)
            if field is None:
                raise
            raise DuplicateError(field) from exc
        return self._map_record(row)

    def find_by_email(self, email: str) -> Account | None:
        """Return the account registered with ``email`` or ``None``."""
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE email = %s", (email,))

    def find_by_token(self, token: str) -> Account | None:
        """Return the pending account holding ``token`` or ``None``."""
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE verification_token = %s AND NOT active",
            (token,),
        )

    def find_by_id(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE account_id = %s", (account_id,))

    def activate_and_clear_token(self, account_id: str, token: str) -> Account | None:
        """Activate the account and clear its token in one conditional update.

        Returns ``None`` when the account no longer holds ``token``.
        """
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE accounts
                    SET active = TRUE, verification_token = NULL, updated_at = %s
                    WHERE account_id = %s AND verification_token = %s AND NOT active
                    RETURNING {_COLUMNS}
                    """,
                    (datetime.now(timezone.utc), account_id, token),
                )
                row = cur.fetchone()
            conn.commit()
        if not row:
            return None
        return self._map_record(row)

    def _fetch_one(self, query: str, params: tuple) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            email=row[1],
            username=row[2],
            password_hash=row[3],
            active=row[4],
            verification_token=row[5],
            created_at=row[6],
            updated_at=row[7],
        )
