# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Resume position resolution."""

import logging

from ...errors import NoResumePoint
from .change_log import ChangeSource
from .models import LogPosition

logger = logging.getLogger(__name__)


async def resolve_resume_position(source: ChangeSource) -> LogPosition:
    """
    Find the position to resume tailing after.

    Must be called before subscribing. The returned record has already
    been observed, so subscribers request positions strictly after it.

    Args:
        source: Change log to query

    Returns:
        Position of the most recent record

    Raises:
        SourceUnavailable: If the log cannot be queried
        NoResumePoint: If the log is empty
    """
    latest = await source.latest()
    if latest is None:
        raise NoResumePoint("change log is empty; no position to resume after")

    logger.info(f"Resuming after {latest.position} ({latest.timestamp.isoformat()})")
    return latest.position
