# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Empirical quantiles and the seven-number summary.

http://en.wikipedia.org/wiki/Seven-number_summary
"""

import math
from typing import Dict, Optional, Sequence

from .models import PERCENTILES, RawSeries, SevenNumberSummary


def empirical_quantile(p: float, sorted_values: Sequence[float]) -> float:
    """
    Linear-interpolated quantile of an ascending sequence.

    The p-quantile sits at rank p * (n - 1); p=0 is the first value and
    p=1 the last.

    Args:
        p: Fraction in [0, 1]
        sorted_values: Non-empty values in ascending order

    Returns:
        Interpolated value

    Raises:
        ValueError: If p is out of range or the sequence is empty
    """
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"quantile fraction must be in [0, 1], got {p}")
    n = len(sorted_values)
    if n == 0:
        raise ValueError("quantile of an empty sequence")

    rank = p * (n - 1)
    lower = math.floor(rank)
    upper = min(lower + 1, n - 1)
    fraction = rank - lower
    if fraction == 0.0:
        return float(sorted_values[lower])
    low_value = sorted_values[lower]
    return float(low_value + (sorted_values[upper] - low_value) * fraction)


def summarize(raw: RawSeries) -> SevenNumberSummary:
    """
    Compute the seven-number summary of a raw series.

    Args:
        raw: Series to summarize

    Returns:
        Summary keyed by the series (key, at)
    """
    values = sorted(point.value for point in raw.values)

    stats: Dict[str, Optional[float]]
    if values:
        stats = {
            'min': empirical_quantile(0.0, values),
            'max': empirical_quantile(1.0, values),
        }
        for name, fraction in PERCENTILES:
            stats[name] = empirical_quantile(fraction, values)
    else:
        stats = {'min': None, 'max': None}
        for name, _ in PERCENTILES:
            stats[name] = None

    return SevenNumberSummary(key=raw.key, at=raw.at, **stats)
