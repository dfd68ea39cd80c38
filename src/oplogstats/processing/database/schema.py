# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Database schema for raw series and summaries."""

import logging

from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS raw_series (
        id TEXT PRIMARY KEY,
        key TEXT NOT NULL,
        at INTEGER NOT NULL,
        values_data BLOB NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_raw_series_key_at ON raw_series(key, at)",
    """
    CREATE TABLE IF NOT EXISTS summary (
        key TEXT NOT NULL,
        at INTEGER NOT NULL,
        min REAL,
        max REAL,
        p2 REAL,
        p9 REAL,
        p25 REAL,
        p50 REAL,
        p75 REAL,
        p91 REAL,
        p98 REAL,
        PRIMARY KEY (key, at)
    )
    """,
)


def create_schema(client: SQLiteClient) -> None:
    """Create tables and indexes if they do not exist."""
    with client.get_connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
        conn.commit()
    logger.info("Schema created")
