from __future__ import annotations

from typing import List

import numpy as np

from src.neighborhood_cf.domain.averages import AverageRecord, averages_vector


def _centered_cosine(dev_x: np.ndarray, dev_y: np.ndarray, axis: int) -> np.ndarray:
    """
    Cosine of two blocks of mean-centered deviations along `axis`.

    Entries outside the co-rated mask must already be zeroed. A zero
    denominator gives 0.0, never NaN. A single co-rated entry
    usually scores +1 or -1.
    """
    numerator = np.sum(dev_x * dev_y, axis=axis)
    denom_x = np.sum(dev_x * dev_x, axis=axis)
    denom_y = np.sum(dev_y * dev_y, axis=axis)

    valid = (denom_x != 0) & (denom_y != 0)
    sims = np.zeros(np.shape(numerator), dtype=float)
    sims[valid] = numerator[valid] / (np.sqrt(denom_x[valid]) * np.sqrt(denom_y[valid]))
    return sims


def user_similarities(ratings: np.ndarray, averages: List[AverageRecord], a: int) -> np.ndarray:
    """
    Pearson correlation between user `a` and every user, over items both rated.

    Returns a length-N vector in row order; the slot for `a` itself is 0.0.
    """
    avg = averages_vector(averages)
    rated = ratings != 0
    co_rated = rated & rated[a][np.newaxis, :]

    dev_a = np.where(co_rated, ratings[a][np.newaxis, :] - avg[a], 0.0)
    dev_b = np.where(co_rated, ratings - avg[:, np.newaxis], 0.0)

    sims = _centered_cosine(dev_a, dev_b, axis=1)
    sims[a] = 0.0
    return sims


def item_similarities(ratings: np.ndarray, averages: List[AverageRecord], i: int) -> np.ndarray:
    """
    Adjusted cosine between item `i` and every item, over users who rated both.

    Each rating is centered on the rating user's own mean, not the item's.
    Returns a length-M vector in column order; the slot for `i` is 0.0.
    """
    avg = averages_vector(averages)
    rated = ratings != 0
    co_rated = rated & rated[:, i][:, np.newaxis]

    dev_i = np.where(co_rated, (ratings[:, i] - avg)[:, np.newaxis], 0.0)
    dev_j = np.where(co_rated, ratings - avg[:, np.newaxis], 0.0)

    sims = _centered_cosine(dev_i, dev_j, axis=0)
    sims[i] = 0.0
    return sims


def pearson_similarity(ratings: np.ndarray, averages: List[AverageRecord], a: int, b: int) -> float:
    """Pearson correlation of users `a` and `b` over their co-rated items."""
    co_rated = (ratings[a] != 0) & (ratings[b] != 0)
    dev_a = np.where(co_rated, ratings[a] - averages[a].avg, 0.0)
    dev_b = np.where(co_rated, ratings[b] - averages[b].avg, 0.0)
    return float(_centered_cosine(dev_a[np.newaxis, :], dev_b[np.newaxis, :], axis=1)[0])


def adjusted_cosine_similarity(ratings: np.ndarray, averages: List[AverageRecord], i: int, j: int) -> float:
    """Adjusted cosine of items `i` and `j` over users who rated both."""
    avg = averages_vector(averages)
    co_rated = (ratings[:, i] != 0) & (ratings[:, j] != 0)
    dev_i = np.where(co_rated, ratings[:, i] - avg, 0.0)
    dev_j = np.where(co_rated, ratings[:, j] - avg, 0.0)
    return float(_centered_cosine(dev_i[np.newaxis, :], dev_j[np.newaxis, :], axis=1)[0])
