# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite connection management.

Each operation opens its own short-lived connection so the client can
be used from worker threads.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


class SQLiteClient:
    """Thin wrapper around sqlite3 with WAL settings."""

    def __init__(self, db_path: str, timeout: float = 30.0):
        """
        Initialize SQLite client.

        Args:
            db_path: Path to the database file
            timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path).expanduser()
        self.timeout = timeout

    def initialize_database(self) -> None:
        """Create the database file and apply connection-independent pragmas."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.commit()
        logger.debug(f"Database ready at {self.db_path}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection, closing it on exit.

        Uncommitted work is rolled back when the block raises.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
