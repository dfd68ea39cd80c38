# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Summary recomputation.

Loads a raw series, summarizes it and upserts the result. Each call is
idempotent, so redelivered identifiers are harmless.
"""

import asyncio
import logging
from typing import Any, Dict

from ..database.stores import RawSeriesStore, SummaryStore
from .models import SevenNumberSummary
from .quantile import summarize

logger = logging.getLogger(__name__)


class SummaryRecomputer:
    """
    Recomputes the summary for one raw series at a time.

    Store calls are blocking, so they run in a worker thread.
    """

    def __init__(self, raw_store: RawSeriesStore, summary_store: SummaryStore):
        """
        Initialize recomputer.

        Args:
            raw_store: Entity store holding raw series
            summary_store: Destination for summaries
        """
        self.raw_store = raw_store
        self.summary_store = summary_store
        self.stats: Dict[str, int] = {
            'recomputed': 0,
        }

    async def recompute(self, entity_id: str) -> SevenNumberSummary:
        """
        Recompute and persist the summary for a raw series.

        Args:
            entity_id: Identifier of the raw series

        Returns:
            The persisted summary

        Raises:
            NotFound: If the series no longer exists
            StoreUnavailable: If the series cannot be read
            PersistFailed: If the upsert fails
        """
        raw = await asyncio.to_thread(self.raw_store.get, entity_id)
        summary = summarize(raw)
        await asyncio.to_thread(self.summary_store.upsert, summary)

        self.stats['recomputed'] += 1
        logger.debug(
            f"Recomputed {summary.key}@{summary.at} from {entity_id} "
            f"({len(raw.values)} values, p50={summary.p50})"
        )
        return summary

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
