# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite-backed entity and summary stores.

The entity store holds raw series written by producers. The summary
store holds one row per (key, at), replaced atomically on every
recompute.
"""

import logging
import sqlite3
import zlib
from typing import List, Optional

from ...errors import NotFound, PersistFailed, StoreUnavailable
from ..summary.models import RawSeries, SevenNumberSummary, SUMMARY_COLUMNS
from .sqlite_client import SQLiteClient
from .writer import compress_values, decompress_values

logger = logging.getLogger(__name__)

_UPSERT_SUMMARY = """
    INSERT INTO summary ({columns})
    VALUES ({placeholders})
    ON CONFLICT(key, at) DO UPDATE SET
        {assignments}
""".format(
    columns=', '.join(SUMMARY_COLUMNS),
    placeholders=', '.join('?' for _ in SUMMARY_COLUMNS),
    assignments=',\n        '.join(
        f"{column} = excluded.{column}" for column in SUMMARY_COLUMNS if column not in ('key', 'at')
    ),
)


class RawSeriesStore:
    """Keyed access to raw series by entity identifier."""

    def __init__(self, sqlite_client: SQLiteClient):
        self.client = sqlite_client

    def get(self, entity_id: str) -> RawSeries:
        """
        Load a raw series.

        Args:
            entity_id: Entity identifier

        Returns:
            RawSeries

        Raises:
            NotFound: If no series has this identifier
            StoreUnavailable: If the database read or decode fails
        """
        try:
            with self.client.get_connection() as conn:
                row = conn.execute(
                    "SELECT id, key, at, values_data FROM raw_series WHERE id = ?",
                    (entity_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to load raw series {entity_id}: {e}") from e

        if row is None:
            raise NotFound(entity_id)

        return self._row_to_series(row)

    def find(self, key: str, at: int) -> Optional[RawSeries]:
        """Return the series for a (key, bucket), if any."""
        try:
            with self.client.get_connection() as conn:
                row = conn.execute(
                    "SELECT id, key, at, values_data FROM raw_series WHERE key = ? AND at = ? LIMIT 1",
                    (key, at),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to look up raw series {key}@{at}: {e}") from e

        return self._row_to_series(row) if row else None

    def save(self, series: RawSeries) -> None:
        """Insert or replace a raw series."""
        try:
            with self.client.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO raw_series (id, key, at, values_data)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        key = excluded.key,
                        at = excluded.at,
                        values_data = excluded.values_data
                    """,
                    (series.id, series.key, series.at, compress_values(series.values)),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to save raw series {series.id}: {e}") from e

    def delete(self, entity_id: str) -> None:
        """Remove a raw series."""
        try:
            with self.client.get_connection() as conn:
                conn.execute("DELETE FROM raw_series WHERE id = ?", (entity_id,))
                conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to delete raw series {entity_id}: {e}") from e

    def _row_to_series(self, row: sqlite3.Row) -> RawSeries:
        try:
            values = decompress_values(row['values_data'])
        except (zlib.error, ValueError, KeyError) as e:
            raise StoreUnavailable(f"Corrupt values for raw series {row['id']}: {e}") from e
        return RawSeries(id=row['id'], key=row['key'], at=row['at'], values=values)


class SummaryStore:
    """Summaries keyed by (key, at) with atomic upsert."""

    def __init__(self, sqlite_client: SQLiteClient):
        self.client = sqlite_client

    def upsert(self, summary: SevenNumberSummary) -> None:
        """
        Insert the summary or replace every statistic of the existing one.

        Raises:
            PersistFailed: If the write does not commit
        """
        try:
            with self.client.get_connection() as conn:
                conn.execute(_UPSERT_SUMMARY, summary.as_row())
                conn.commit()
        except sqlite3.Error as e:
            raise PersistFailed(f"Failed to upsert summary {summary.key}@{summary.at}: {e}") from e

        logger.debug(f"Upserted summary {summary.key}@{summary.at}")

    def get(self, key: str, at: int) -> Optional[SevenNumberSummary]:
        try:
            with self.client.get_connection() as conn:
                row = conn.execute(
                    f"SELECT {', '.join(SUMMARY_COLUMNS)} FROM summary WHERE key = ? AND at = ?",
                    (key, at),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to load summary {key}@{at}: {e}") from e
        return SevenNumberSummary(**dict(row)) if row else None

    def list_for_key(self, key: str, limit: int = 60) -> List[SevenNumberSummary]:
        """Most recent summaries for a key, newest first."""
        try:
            with self.client.get_connection() as conn:
                rows = conn.execute(
                    f"SELECT {', '.join(SUMMARY_COLUMNS)} FROM summary WHERE key = ? ORDER BY at DESC LIMIT ?",
                    (key, limit),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to list summaries for {key}: {e}") from e
        return [SevenNumberSummary(**dict(row)) for row in rows]
