# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite persistence for raw series and summaries.
"""

from .sqlite_client import SQLiteClient
from .schema import create_schema
from .stores import RawSeriesStore, SummaryStore

__all__ = [
    'SQLiteClient',
    'create_schema',
    'RawSeriesStore',
    'SummaryStore',
]
