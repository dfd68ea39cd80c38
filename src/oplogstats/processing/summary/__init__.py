# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Seven-number summaries of raw metric series.
"""

from .models import Datapoint, RawSeries, SevenNumberSummary
from .quantile import empirical_quantile, summarize

__all__ = [
    'Datapoint',
    'RawSeries',
    'SevenNumberSummary',
    'empirical_quantile',
    'summarize',
]
