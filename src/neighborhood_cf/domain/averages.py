from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List

import numpy as np


@dataclass
class AverageRecord:
    """Running mean of one user's non-zero ratings."""
    sum: float
    count: int
    avg: float


def compute_averages(ratings: np.ndarray) -> List[AverageRecord]:
    """
    Per-row mean over non-zero entries.

    A row with no ratings gets avg=0 instead of a division error.
    """
    records: List[AverageRecord] = []
    for row in np.asarray(ratings, dtype=float):
        rated = row[row != 0]
        total = float(rated.sum())
        count = int(rated.size)
        records.append(AverageRecord(sum=total, count=count, avg=total / count if count else 0.0))
    return records


def averages_vector(averages: List[AverageRecord]) -> np.ndarray:
    return np.fromiter((rec.avg for rec in averages), dtype=float, count=len(averages))


@contextmanager
def excluded_rating(averages: List[AverageRecord], row: int, rating: float) -> Iterator[AverageRecord]:
    """
    Temporarily drop `rating` from the mean of `row`.

    The leave-one-out mean is derived from the stored sum/count, which are
    left untouched. The saved avg is written back on every exit path, so the
    record is bit-identical afterwards.
    """
    record = averages[row]
    saved_avg = record.avg

    remaining_sum = record.sum - rating
    remaining_count = record.count - 1
    record.avg = remaining_sum / remaining_count if remaining_count != 0 else 0.0
    try:
        yield record
    finally:
        record.avg = saved_avg
