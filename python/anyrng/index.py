"""Coarse search index over the sorted intervals."""

from typing import Sequence

import numpy as np

from .config import SEARCH_TABLE_LENGTH
from .intervals import Interval


def build_search_index(
    intervals: Sequence[Interval], length: int = SEARCH_TABLE_LENGTH
) -> np.ndarray:
    """Map evenly spaced CDF buckets to starting positions for the scan.

    Entry i holds the position of the rightmost interval whose Fr is below
    i / length, or 0 if there is none. Every entry is therefore a lower bound
    on the position of the interval that serves any u in bucket i.

    Args:
        intervals: Intervals sorted by Fl, tiling [0, 1] in CDF space
        length: Number of buckets (default: 100)

    Returns:
        Non-decreasing integer array of shape (length,)
    """
    if length < 1:
        raise ValueError(f"index length must be at least 1, got {length}")
    Fr = np.array([iv.Fr for iv in intervals], dtype=np.float64)
    buckets = np.arange(length, dtype=np.float64) / length
    below = np.searchsorted(Fr, buckets, side="left")
    return np.maximum(below - 1, 0).astype(np.int64)
