# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Command-line interface for oplog-stats.
"""

from .main import cli

__all__ = ['cli']
