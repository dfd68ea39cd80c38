"""
oplog-stats

Change-data-capture consumer that keeps seven-number summaries of
time-bucketed metric series up to date.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

__version__ = "0.1.0"
__author__ = "Sierra Labs"
__email__ = "support@blueplane.ai"

__all__ = ["__version__", "__author__", "__email__"]
