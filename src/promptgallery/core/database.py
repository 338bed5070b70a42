"""Shared SQLite connection for the gallery stores.

The connection is a process-wide resource that is opened lazily on first use.
Opening happens under a lock so concurrent first callers wait for and reuse
the same attempt instead of racing to open their own connection.  If opening
fails nothing is cached, so the next caller tries again.

Usage
-----
::

    from promptgallery.core.database import Database

    db = Database("data/gallery.db")
    with db.session() as conn:
        conn.execute("SELECT 1")

All ``sqlite3.Error`` raised inside :meth:`Database.session` is rolled back
and re-raised as :class:`~promptgallery.core.errors.PersistenceError`.
"""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .errors import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS images (
    id TEXT PRIMARY KEY,
    prompt TEXT NOT NULL,
    image_data TEXT NOT NULL,
    mime_type TEXT,
    user_id TEXT,
    username TEXT,
    is_private INTEGER NOT NULL DEFAULT 0,
    api_provider TEXT,
    model TEXT,
    image_size TEXT,
    generation_time INTEGER,
    output_tokens INTEGER,
    cost REAL,
    aspect_ratio TEXT,
    quality TEXT,
    style TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_images_created_at ON images(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_images_user_id ON images(user_id);
CREATE INDEX IF NOT EXISTS idx_images_is_private ON images(is_private);
"""


class Database:
    """Lazily opened, shared SQLite connection.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        # Guards connection opening (single-flight).
        self._connect_lock = threading.Lock()
        # Serializes statements on the shared connection.
        self._op_lock = threading.RLock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> sqlite3.Connection:
        """Return the shared connection, opening it on first use.

        Returns:
            Open sqlite3 connection with ``sqlite3.Row`` row factory.

        Raises:
            PersistenceError: If the database cannot be opened or initialized.
        """
        if self._conn is not None:
            return self._conn

        with self._connect_lock:
            # Another caller may have finished opening while we waited.
            if self._conn is not None:
                return self._conn

            logger.info(f"Opening gallery database at {self.db_path}")
            conn: sqlite3.Connection | None = None
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.executescript(SCHEMA)
                conn.commit()
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Failed to open gallery database {self.db_path}: {e}")
                if conn is not None:
                    conn.close()
                raise PersistenceError(f"Database connection failed: {e}") from e

            self._conn = conn
            return conn

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Run statements on the shared connection inside one transaction.

        Commits on success and rolls back on any exception.

        Yields:
            The shared sqlite3 connection.

        Raises:
            PersistenceError: Wrapping any ``sqlite3.Error`` raised in the block.
        """
        conn = self.connect()
        with self._op_lock:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Database operation failed: {e}")
                raise PersistenceError(f"Database operation failed: {e}") from e
            except BaseException:
                conn.rollback()
                raise

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            with self.session() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except PersistenceError:
            return False

    def close(self) -> None:
        """Close the shared connection.  A later call reopens it."""
        with self._connect_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Closed gallery database")
