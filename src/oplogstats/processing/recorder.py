# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Producer-side helper that writes observations and logs the change.

Mirrors what upstream producers do: save the raw series, then append an
insert (new bucket) or update (existing bucket) record to the log.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from .database.stores import RawSeriesStore
from .oplog.change_log import RedisChangeLog
from .oplog.models import ChangeRecord, LogPosition, OP_INSERT, OP_UPDATE
from .summary.models import Datapoint, RawSeries

logger = logging.getLogger(__name__)


def bucket_start(at: datetime, bucket_seconds: int = 60) -> int:
    """Unix start of the bucket containing `at`."""
    seconds = int(at.timestamp())
    return seconds - seconds % bucket_seconds


class SeriesRecorder:
    """Appends observations to per-minute raw series."""

    def __init__(
        self,
        raw_store: RawSeriesStore,
        change_log: RedisChangeLog,
        namespace: str = "metrics.raw",
        bucket_seconds: int = 60,
    ):
        self.raw_store = raw_store
        self.change_log = change_log
        self.namespace = namespace
        self.bucket_seconds = bucket_seconds

    async def record(self, key: str, value: float, at: Optional[datetime] = None) -> RawSeries:
        """
        Record one observation.

        Args:
            key: Series key
            value: Observed value
            at: Observation time (defaults to now, UTC)

        Returns:
            The updated raw series
        """
        at = at or datetime.now(timezone.utc)
        point = Datapoint(at=at, value=float(value))
        bucket = bucket_start(at, self.bucket_seconds)

        series = await asyncio.to_thread(self.raw_store.find, key, bucket)
        if series is None:
            series = RawSeries(id=uuid.uuid4().hex[:24], key=key, at=bucket, values=[point])
            change = ChangeRecord(
                position=LogPosition(0),
                op=OP_INSERT,
                namespace=self.namespace,
                obj={
                    '_id': series.id,
                    'key': key,
                    'at': bucket,
                    'values': [point.to_dict()],
                },
            )
        else:
            series.values.append(point)
            change = ChangeRecord(
                position=LogPosition(0),
                op=OP_UPDATE,
                namespace=self.namespace,
                obj={'$push': {'values': point.to_dict()}},
                query={'_id': series.id},
            )

        await asyncio.to_thread(self.raw_store.save, series)
        position = await self.change_log.append(change)
        logger.info(f"Recorded {key}={value} in bucket {bucket} ({change.op} at {position})")
        return series
