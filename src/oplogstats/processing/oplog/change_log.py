# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Change log source backed by a Redis Stream.

The stream plays the role of the replicated oplog: entries are appended
by producers, entry IDs are strictly increasing, and XREAD with BLOCK 0
gives an indefinite, resumable tail.
"""

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

import redis
import redis.asyncio as aioredis

from ...errors import SourceUnavailable, StreamBroken
from .models import ChangeRecord, LogPosition

logger = logging.getLogger(__name__)


class ChangeSource(ABC):
    """
    Capability interface for an ordered, resumable change log.

    Implementations must yield records in log order and suspend the
    caller while no new record is available.
    """

    @abstractmethod
    async def latest(self) -> Optional[ChangeRecord]:
        """
        Return the most recent record, or None if the log is empty.

        Raises:
            SourceUnavailable: If the log cannot be queried
        """
        ...

    @abstractmethod
    def tail(self, after: LogPosition) -> AsyncIterator[ChangeRecord]:
        """
        Yield every record with a position strictly greater than `after`.

        The iterator never ends on its own for a live log.

        Raises:
            StreamBroken: If the subscription is lost
        """
        ...


class RedisChangeLog(ChangeSource):
    """Change log stored in a single Redis Stream."""

    def __init__(
        self,
        redis_client: aioredis.Redis,
        stream_name: str = "oplog:rs",
        count: int = 100,
    ):
        """
        Initialize the change log.

        Args:
            redis_client: Async Redis client (must not have a socket read timeout)
            stream_name: Stream holding the log
            count: Maximum entries fetched per XREAD
        """
        self.redis_client = redis_client
        self.stream_name = stream_name
        self.count = count

    async def latest(self) -> Optional[ChangeRecord]:
        try:
            entries = await self.redis_client.xrevrange(self.stream_name, count=1)
        except redis.RedisError as e:
            raise SourceUnavailable(f"Failed to read latest entry of {self.stream_name}: {e}") from e

        if not entries:
            return None

        entry_id, fields = entries[0]
        return ChangeRecord.from_stream_entry(entry_id, fields)

    async def tail(self, after: LogPosition) -> AsyncIterator[ChangeRecord]:
        last_id = str(after)
        logger.info(f"Tailing {self.stream_name} after {last_id}")

        while True:
            try:
                # XREAD is exclusive of last_id; BLOCK 0 waits forever
                response = await self.redis_client.xread(
                    {self.stream_name: last_id},
                    count=self.count,
                    block=0,
                )
            except redis.RedisError as e:
                raise StreamBroken(f"Lost tail of {self.stream_name} after {last_id}: {e}") from e

            for _stream, entries in response or []:
                for entry_id, fields in entries:
                    record = ChangeRecord.from_stream_entry(entry_id, fields)
                    last_id = str(record.position)
                    yield record

    async def append(self, record: ChangeRecord) -> LogPosition:
        """
        Append a record to the log.

        Args:
            record: Record to append (its position is ignored)

        Returns:
            Position assigned by Redis

        Raises:
            SourceUnavailable: If the entry cannot be written
        """
        try:
            entry_id = await self.redis_client.xadd(self.stream_name, record.to_stream_fields())
        except redis.RedisError as e:
            raise SourceUnavailable(f"Failed to append to {self.stream_name}: {e}") from e
        position = LogPosition.parse(entry_id)
        logger.debug(f"Appended {record.op} on {record.namespace} at {position}")
        return position
