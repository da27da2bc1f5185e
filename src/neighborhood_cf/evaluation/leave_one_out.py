from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterator, List

import numpy as np
from sklearn.metrics import mean_squared_error

from src.neighborhood_cf.domain.averages import compute_averages, excluded_rating
from src.neighborhood_cf.logging_utils import configure_logger

if TYPE_CHECKING:
    from src.neighborhood_cf.domain.predictors import CFPredictor, RunStatistics

logger = configure_logger(__name__)

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class LeaveOneOutResult:
    predictions: np.ndarray
    stats: "RunStatistics"


def round_rating(value: float) -> float:
    """Round half-up to 2 decimals on the exact binary value of `value`."""
    return float(Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


@contextmanager
def hidden_cell(ratings: np.ndarray, row: int, col: int) -> Iterator[float]:
    """Zero one cell for the duration of the block, then put the rating back."""
    saved = ratings[row, col]
    ratings[row, col] = 0.0
    try:
        yield saved
    finally:
        ratings[row, col] = saved


def leave_one_out(predictor: "CFPredictor", ratings: np.ndarray) -> LeaveOneOutResult:
    """
    Leave-one-out cross-validation of `predictor` over every rated cell.

    Each rated cell is hidden in turn (matrix entry and owner's mean), its
    similarity vector recomputed against the hidden state and the cell
    predicted. Unrated cells stay 0 in the returned predictions and are not
    scored. Counters land in `predictor.stats`; the caller's array is not
    modified.
    """
    matrix = np.array(ratings, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"ratings must be a 2-D matrix, got shape {matrix.shape}")

    n_users, n_items = matrix.shape
    averages = compute_averages(matrix)
    predictions = np.zeros_like(matrix)
    stats = predictor.stats

    actual: List[float] = []
    predicted: List[float] = []

    logger.info(
        "loocv_started",
        extra={
            "event": "loocv.start",
            "mode": predictor.mode,
            "neighborhood_size": predictor.neighborhood_size,
            "similarity_threshold": predictor.similarity_threshold,
            "absolute_similarity": predictor.absolute_similarity,
            "rows": n_users,
            "columns": n_items,
        },
    )

    for i in range(n_users):
        for j in range(n_items):
            rating = float(matrix[i, j])
            if rating == 0:
                continue

            with excluded_rating(averages, i, rating), hidden_cell(matrix, i, j):
                similarities = predictor.compute_similarities(matrix, averages, i, j)
                raw = predictor.predict(i, j, matrix, similarities, averages)

            prediction = round_rating(raw)
            predictions[i, j] = prediction

            stats.total_errors += abs(prediction - rating)
            stats.predictions_made += 1
            actual.append(rating)
            predicted.append(prediction)

        logger.debug(
            "loocv_row_done",
            extra={"event": "loocv.row", "user": i, "predictions_made": stats.predictions_made},
        )

    # No scored cell leaves both metrics undefined; surfaced as NaN for the caller.
    if stats.predictions_made:
        stats.mae = stats.total_errors / stats.predictions_made
        stats.rmse = float(np.sqrt(mean_squared_error(actual, predicted)))
    else:
        stats.mae = stats.rmse = float("nan")

    logger.info(
        "loocv_finished",
        extra={
            "event": "loocv.finish",
            "mode": predictor.mode,
            "predictions_made": stats.predictions_made,
            "no_valid_neighbors": stats.no_valid_neighbors,
            "r_less_than_one": stats.r_less_than_one,
            "r_greater_five": stats.r_greater_five,
            "average_neighbourhood_size": stats.average_neighbourhood_size,
            "mae": stats.mae,
            "rmse": stats.rmse,
        },
    )

    return LeaveOneOutResult(predictions=predictions, stats=stats)
