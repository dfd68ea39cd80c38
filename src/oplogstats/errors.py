# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Error taxonomy for the tailing pipeline.

Every stage raises one of these and never recovers locally; the
pipeline decides what is fatal.
"""

from typing import Optional


class OplogStatsError(Exception):
    """Base class for all oplog-stats errors."""


class SourceUnavailable(OplogStatsError):
    """The change log could not be queried."""


class NoResumePoint(OplogStatsError):
    """The change log is empty, so there is no position to resume after."""


class StreamBroken(OplogStatsError):
    """The change log subscription was lost."""


class NotFound(OplogStatsError):
    """A raw series referenced by a change record no longer exists."""

    def __init__(self, entity_id: str):
        super().__init__(f"raw series {entity_id} not found")
        self.entity_id = entity_id


class StoreUnavailable(OplogStatsError):
    """The entity store failed for a reason other than a missing row."""


class PersistFailed(OplogStatsError):
    """A summary upsert did not complete."""


class PipelineHalted(OplogStatsError):
    """
    Raised by the pipeline when any stage fails.

    Attributes:
        stage: Name of the failing stage (resume, subscribe, extract, recompute)
        cause: The underlying exception
    """

    def __init__(self, stage: str, cause: Optional[BaseException]):
        super().__init__(f"pipeline halted in stage '{stage}': {cause!r}")
        self.stage = stage
        self.cause = cause
