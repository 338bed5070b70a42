"""Persistence for user accounts.

Email and username uniqueness is enforced by UNIQUE constraints on the
``accounts`` table.  A friendly pre-check names the conflicting field; the
constraint still catches a concurrent duplicate.
"""

import logging
import sqlite3
import uuid

from .database import Database
from .errors import ConflictError, PersistenceError
from .models import Account, utcnow

logger = logging.getLogger(__name__)


class AccountStore:
    """Create and look up accounts."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, email: str, username: str, password_hash: str) -> Account:
        """Insert a new account.

        Args:
            email: Email address (stored lowercase).
            username: Username, unique as given.
            password_hash: Salted password hash.

        Returns:
            The stored Account.

        Raises:
            ConflictError: If the email or username is already registered.
            PersistenceError: If the insert fails for any other reason.
        """
        email = email.strip().lower()
        username = username.strip()

        existing = self.find_by_email_or_username(email, username)
        if existing is not None:
            raise ConflictError("email" if existing.email == email else "username")

        now = utcnow()
        account = Account(
            id=uuid.uuid4().hex,
            email=email,
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )

        try:
            with self.db.session() as conn:
                conn.execute(
                    """
                    INSERT INTO accounts (id, email, username, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        account.id,
                        account.email,
                        account.username,
                        account.password_hash,
                        now.isoformat(timespec="microseconds"),
                        now.isoformat(timespec="microseconds"),
                    ),
                )
        except PersistenceError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                field = "email" if "accounts.email" in str(e.__cause__) else "username"
                raise ConflictError(field) from e
            raise

        logger.info(f"Created account {account.id} ({account.username})")
        return account

    def find_by_email(self, email: str) -> Account | None:
        with self.db.session() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
        return Account.from_row(dict(row)) if row else None

    def find_by_email_or_username(self, email: str, username: str) -> Account | None:
        with self.db.session() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE email = ? OR username = ? LIMIT 1",
                (email.strip().lower(), username.strip()),
            ).fetchone()
        return Account.from_row(dict(row)) if row else None
