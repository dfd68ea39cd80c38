# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Compression helpers for stored observations.
"""

import json
import zlib
from typing import List

from ..summary.models import Datapoint

# Compression level (6 provides good balance: 7-10x compression ratio)
COMPRESSION_LEVEL = 6


def compress_values(values: List[Datapoint]) -> bytes:
    """
    Compress observations using zlib.

    Args:
        values: Observations

    Returns:
        Compressed JSON bytes
    """
    json_str = json.dumps([point.to_dict() for point in values], separators=(',', ':'))
    return zlib.compress(json_str.encode('utf-8'), COMPRESSION_LEVEL)


def decompress_values(data: bytes) -> List[Datapoint]:
    """Inverse of compress_values."""
    return [Datapoint.from_dict(item) for item in json.loads(zlib.decompress(data))]
