# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Raw series and summary types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

# Percentiles stored alongside min/max, as (column, fraction)
PERCENTILES: Tuple[Tuple[str, float], ...] = (
    ('p2', 0.02),
    ('p9', 0.09),
    ('p25', 0.25),
    ('p50', 0.50),
    ('p75', 0.75),
    ('p91', 0.91),
    ('p98', 0.98),
)

SUMMARY_COLUMNS = ('key', 'at', 'min', 'max') + tuple(name for name, _ in PERCENTILES)


@dataclass(frozen=True)
class Datapoint:
    """A single observation."""

    at: datetime
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {'at': self.at.isoformat(), 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Datapoint":
        return cls(at=datetime.fromisoformat(data['at']), value=float(data['value']))


@dataclass
class RawSeries:
    """
    Time-bucketed observations for one metric key.

    Attributes:
        id: Opaque entity identifier assigned by the store
        key: Series key
        at: Bucket start (unix seconds)
        values: Observations in arrival order
    """

    id: str
    key: str
    at: int
    values: List[Datapoint] = field(default_factory=list)


@dataclass(frozen=True)
class SevenNumberSummary:
    """
    Seven-number summary of one (key, bucket).

    Statistics are None when the bucket has no observations.
    """

    key: str
    at: int
    min: Optional[float]
    max: Optional[float]
    p2: Optional[float]
    p9: Optional[float]
    p25: Optional[float]
    p50: Optional[float]
    p75: Optional[float]
    p91: Optional[float]
    p98: Optional[float]

    def as_row(self) -> Tuple[Any, ...]:
        """Values in SUMMARY_COLUMNS order."""
        return tuple(getattr(self, column) for column in SUMMARY_COLUMNS)
