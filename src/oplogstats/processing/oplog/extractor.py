# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Decodes change records into raw series identifiers.

Inserts carry the identifier in the payload; updates carry it in the
selector, since an update payload may be a partial delta.
"""

import logging
from typing import Any, Dict, Optional

from .models import ChangeRecord

logger = logging.getLogger(__name__)

ID_FIELD = "_id"


def _coerce_identifier(value: Any) -> Optional[str]:
    # Plain string ids, or MongoDB extended JSON {"$oid": "..."}
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict) and set(value) == {"$oid"}:
        oid = value["$oid"]
        if isinstance(oid, str) and oid:
            return oid
    return None


class IdentifierExtractor:
    """
    Extracts at most one identifier per change record.

    Records without a usable identifier are dropped and counted; they
    are not an error.
    """

    def __init__(self) -> None:
        self.stats: Dict[str, int] = {
            'extracted': 0,
            'dropped': 0,
        }

    def extract(self, record: ChangeRecord) -> Optional[str]:
        """
        Return the identifier of the entity a record touches.

        Args:
            record: Insert or update record

        Returns:
            Identifier string, or None if the record was dropped
        """
        if record.is_insert:
            source = record.obj
        elif record.is_update:
            source = record.query
        else:
            source = {}

        identifier = _coerce_identifier(source.get(ID_FIELD))
        if identifier is None:
            self.stats['dropped'] += 1
            logger.debug(
                f"Dropped {record.op!r} record at {record.position}: "
                f"no usable {ID_FIELD} ({type(source.get(ID_FIELD)).__name__})"
            )
            return None

        self.stats['extracted'] += 1
        return identifier
