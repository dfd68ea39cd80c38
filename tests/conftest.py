# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fixtures: an in-memory change log and temporary SQLite stores.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest

from oplogstats.errors import StreamBroken
from oplogstats.processing.database.schema import create_schema
from oplogstats.processing.database.sqlite_client import SQLiteClient
from oplogstats.processing.database.stores import RawSeriesStore, SummaryStore
from oplogstats.processing.oplog.change_log import ChangeSource
from oplogstats.processing.oplog.models import ChangeRecord, LogPosition
from oplogstats.processing.summary.models import Datapoint, RawSeries

BASE_MILLIS = 1_700_000_000_000


class FakeChangeLog(ChangeSource):
    """
    In-memory change log.

    Tails forever until close() or break_stream() is called. Positions
    put two records in each millisecond so the sequence part is used.
    """

    def __init__(self) -> None:
        self.records: List[ChangeRecord] = []
        self.closed = False
        self.error: Optional[Exception] = None
        self.break_at = 0
        self.tail_calls: List[LogPosition] = []
        self._event: Optional[asyncio.Event] = None

    def append(
        self,
        op: str,
        obj: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
        namespace: str = "metrics.raw",
    ) -> ChangeRecord:
        index = len(self.records)
        record = ChangeRecord(
            position=LogPosition(BASE_MILLIS + index // 2, index % 2),
            op=op,
            namespace=namespace,
            obj=obj or {},
            query=query or {},
            history_id=index,
        )
        self.records.append(record)
        self._notify()
        return record

    def close(self) -> None:
        self.closed = True
        self._notify()

    def break_stream(self) -> None:
        """Fail the tail once it reaches the records appended so far."""
        self.error = StreamBroken("connection reset by peer")
        self.break_at = len(self.records)
        self._notify()

    def _notify(self) -> None:
        if self._event is not None:
            self._event.set()

    async def _wait(self) -> None:
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()
        self._event.clear()

    async def latest(self) -> Optional[ChangeRecord]:
        return self.records[-1] if self.records else None

    async def tail(self, after: LogPosition) -> AsyncIterator[ChangeRecord]:
        self.tail_calls.append(after)
        index = 0
        while True:
            limit = len(self.records) if self.error is None else self.break_at
            while index < limit:
                record = self.records[index]
                index += 1
                if record.position > after:
                    yield record
            if self.error is not None:
                raise self.error
            if self.closed:
                return
            await self._wait()


def make_series(entity_id: str, key: str = "cpu", at: int = 1_700_000_040, values=()) -> RawSeries:
    """Build a raw series with one observation per second from the bucket start."""
    start = datetime.fromtimestamp(at, tz=timezone.utc)
    return RawSeries(
        id=entity_id,
        key=key,
        at=at,
        values=[Datapoint(at=start + timedelta(seconds=i), value=float(v)) for i, v in enumerate(values)],
    )


@pytest.fixture
def change_log() -> FakeChangeLog:
    return FakeChangeLog()


@pytest.fixture
def sqlite_client(tmp_path) -> SQLiteClient:
    client = SQLiteClient(str(tmp_path / "metrics.db"))
    client.initialize_database()
    create_schema(client)
    return client


@pytest.fixture
def raw_store(sqlite_client) -> RawSeriesStore:
    return RawSeriesStore(sqlite_client)


@pytest.fixture
def summary_store(sqlite_client) -> SummaryStore:
    return SummaryStore(sqlite_client)
