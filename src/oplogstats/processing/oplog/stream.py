# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Filtered subscription to the change log.

Passes through only records for one namespace and operation set,
preserving log order.
"""

import logging
from typing import AsyncIterator, Collection

from .change_log import ChangeSource
from .models import ChangeRecord, LogPosition, OP_INSERT, OP_UPDATE

logger = logging.getLogger(__name__)

DEFAULT_OPERATIONS = (OP_INSERT, OP_UPDATE)


async def subscribe(
    source: ChangeSource,
    after: LogPosition,
    namespace: str,
    operations: Collection[str] = DEFAULT_OPERATIONS,
) -> AsyncIterator[ChangeRecord]:
    """
    Yield relevant records after a position.

    Predicate: position > after AND namespace matches AND op in operations.

    Args:
        source: Change log to tail
        after: Resume position (exclusive)
        namespace: Target namespace, e.g. "metrics.raw"
        operations: Operation kinds to keep

    Raises:
        StreamBroken: Propagated from the source
    """
    async for record in source.tail(after):
        if record.position <= after:
            continue
        if record.namespace != namespace or record.op not in operations:
            continue
        logger.debug(f"Matched {record.op} on {record.namespace} at {record.position}")
        yield record
