# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tailing pipeline.

Wires resume -> subscribe -> extract -> recompute as three concurrent
stages joined by bounded queues. A slow recompute blocks extraction,
which blocks the subscription from pulling further records.

Recomputation runs in a single consumer, so recomputes for the same
entity happen in the order their records were logged.

Any stage failure cancels the others and surfaces as PipelineHalted.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..errors import NotFound, OplogStatsError, PipelineHalted
from .oplog.change_log import ChangeSource
from .oplog.extractor import IdentifierExtractor
from .oplog.models import LogPosition
from .oplog.resume import resolve_resume_position
from .oplog.stream import subscribe
from .summary.recompute import SummaryRecomputer

logger = logging.getLogger(__name__)

# Marks a finite source running dry
_END = object()

STAGES = ('subscribe', 'extract', 'recompute')


class TailPipeline:
    """
    Streaming pipeline from the change log to persisted summaries.

    Delivery is at-least-once; recomputes are idempotent and duplicates
    are not coalesced.
    """

    def __init__(
        self,
        source: ChangeSource,
        recomputer: SummaryRecomputer,
        namespace: str = "metrics.raw",
        queue_size: int = 1,
        skip_missing: bool = False,
    ):
        """
        Initialize pipeline.

        Args:
            source: Change log to tail
            recomputer: Summary recomputation engine
            namespace: Namespace whose inserts/updates trigger recomputes
            queue_size: Capacity of each handoff queue
            skip_missing: Log and skip NotFound instead of halting
        """
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")

        self.source = source
        self.recomputer = recomputer
        self.namespace = namespace
        self.queue_size = queue_size
        self.skip_missing = skip_missing
        self.extractor = IdentifierExtractor()

        self.running = False
        # Last record fully handled by the recompute stage; safe to restart after
        self.last_position: Optional[LogPosition] = None
        self.stats: Dict[str, int] = {
            'records': 0,
            'identifiers': 0,
            'skipped': 0,
        }

    async def run(self, after: Optional[LogPosition] = None) -> None:
        """
        Run until the source ends or a stage fails.

        Args:
            after: Position to resume after; resolved from the log if None

        Raises:
            PipelineHalted: On the first error from any stage
        """
        if self.running:
            raise RuntimeError("pipeline already running")

        if after is None:
            try:
                after = await resolve_resume_position(self.source)
            except OplogStatsError as e:
                logger.error(f"Stage resume failed: {e}")
                raise PipelineHalted('resume', e) from e

        records: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        identifiers: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)

        tasks = {
            'subscribe': asyncio.create_task(self._subscribe_stage(after, records), name='subscribe'),
            'extract': asyncio.create_task(self._extract_stage(records, identifiers), name='extract'),
            'recompute': asyncio.create_task(self._recompute_stage(identifiers), name='recompute'),
        }

        self.running = True
        self.last_position = after
        logger.info(f"Pipeline started on {self.namespace} after {after}")

        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            self.running = False
            logger.info(f"Pipeline stopped: {self.get_stats()}")

        for stage in STAGES:
            task = tasks[stage]
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.error(f"Stage {stage} failed: {error}")
                raise PipelineHalted(stage, error) from error

    async def _subscribe_stage(self, after: LogPosition, out: asyncio.Queue) -> None:
        async for record in subscribe(self.source, after, self.namespace):
            self.stats['records'] += 1
            await out.put(record)
        await out.put(_END)

    async def _extract_stage(self, inbox: asyncio.Queue, out: asyncio.Queue) -> None:
        while True:
            record = await inbox.get()
            if record is _END:
                await out.put(_END)
                return

            identifier = self.extractor.extract(record)
            if identifier is not None:
                self.stats['identifiers'] += 1
            # Dropped records are forwarded without an identifier
            await out.put((record.position, identifier))

    async def _recompute_stage(self, inbox: asyncio.Queue) -> None:
        while True:
            item = await inbox.get()
            if item is _END:
                return

            position, identifier = item
            if identifier is not None:
                try:
                    await self.recomputer.recompute(identifier)
                except NotFound as e:
                    if not self.skip_missing:
                        raise
                    self.stats['skipped'] += 1
                    logger.warning(f"Skipping recompute: {e}")
            self.last_position = position

    def get_stats(self) -> Dict[str, Any]:
        """Pipeline counters."""
        return {
            'running': self.running,
            'last_position': str(self.last_position) if self.last_position else None,
            **self.stats,
            'dropped': self.extractor.stats['dropped'],
            'recomputed': self.recomputer.stats['recomputed'],
        }
