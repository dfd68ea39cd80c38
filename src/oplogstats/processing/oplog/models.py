# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Change log record types.

A change record mirrors one oplog document. Its position is the Redis
Stream entry ID (`<millis>-<seq>`), which is both the ordering key and
the only valid resume token.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Union

logger = logging.getLogger(__name__)

OP_INSERT = "i"
OP_UPDATE = "u"

# Stream fields holding JSON documents
DOCUMENT_FIELDS = ('o', 'o2')


@dataclass(frozen=True, order=True)
class LogPosition:
    """Position of a record in the change log."""

    millis: int
    seq: int = 0

    @classmethod
    def parse(cls, value: Union[str, bytes]) -> "LogPosition":
        """
        Parse a stream entry ID.

        Args:
            value: Entry ID such as "1700000000000-3" (bytes or str)

        Returns:
            LogPosition

        Raises:
            ValueError: If the ID is malformed
        """
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        millis, sep, seq = value.partition('-')
        return cls(int(millis), int(seq) if sep else 0)

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.millis / 1000.0, tz=timezone.utc)

    def __str__(self) -> str:
        return f"{self.millis}-{self.seq}"


def _decode(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def _int_field(fields: Mapping[str, str], key: str) -> int:
    try:
        return int(fields.get(key, 0))
    except ValueError:
        return 0


@dataclass(frozen=True)
class ChangeRecord:
    """
    One entry from the replicated log.

    Attributes:
        position: Log position (timestamp + intra-timestamp sequence)
        history_id: Logical clock / history id (`h`)
        version: Schema version (`v`)
        op: Operation kind (`i`, `u`, or anything else)
        namespace: Target namespace (`ns`)
        obj: Operation payload (`o`)
        query: Selector for updates (`o2`)
    """

    position: LogPosition
    op: str
    namespace: str
    obj: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    history_id: int = 0
    version: int = 2

    @property
    def timestamp(self) -> datetime:
        return self.position.timestamp

    @property
    def is_insert(self) -> bool:
        return self.op == OP_INSERT

    @property
    def is_update(self) -> bool:
        return self.op == OP_UPDATE

    @classmethod
    def from_stream_entry(cls, entry_id: Union[str, bytes], fields: Mapping) -> "ChangeRecord":
        """
        Decode a Redis Stream entry into a change record.

        Document fields that are not valid JSON objects decode to an
        empty dict.

        Args:
            entry_id: Stream entry ID
            fields: Raw field mapping (bytes or str keys/values)

        Returns:
            ChangeRecord
        """
        decoded = {_decode(k): _decode(v) for k, v in fields.items()}

        documents: Dict[str, Dict[str, Any]] = {}
        for key in DOCUMENT_FIELDS:
            raw = decoded.get(key)
            if raw is None:
                documents[key] = {}
                continue
            try:
                document = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug(f"Undecodable '{key}' document in entry {_decode(entry_id)}")
                document = {}
            documents[key] = document if isinstance(document, dict) else {}

        return cls(
            position=LogPosition.parse(entry_id),
            op=decoded.get('op', ''),
            namespace=decoded.get('ns', ''),
            obj=documents['o'],
            query=documents['o2'],
            history_id=_int_field(decoded, 'h'),
            version=_int_field(decoded, 'v'),
        )

    def to_stream_fields(self) -> Dict[str, str]:
        """Encode as flat stream fields (position is assigned by the log)."""
        fields = {
            'h': str(self.history_id),
            'v': str(self.version),
            'op': self.op,
            'ns': self.namespace,
            'o': json.dumps(self.obj, separators=(',', ':')),
        }
        if self.query:
            fields['o2'] = json.dumps(self.query, separators=(',', ':'))
        return fields
