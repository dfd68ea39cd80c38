# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Change log tailing.

Resolves the resume position, subscribes to the log and decodes
change records into raw series identifiers.
"""

from .models import ChangeRecord, LogPosition, OP_INSERT, OP_UPDATE
from .change_log import ChangeSource, RedisChangeLog
from .resume import resolve_resume_position
from .stream import subscribe
from .extractor import IdentifierExtractor

__all__ = [
    'ChangeRecord',
    'LogPosition',
    'OP_INSERT',
    'OP_UPDATE',
    'ChangeSource',
    'RedisChangeLog',
    'resolve_resume_position',
    'subscribe',
    'IdentifierExtractor',
]
