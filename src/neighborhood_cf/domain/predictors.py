from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from src.neighborhood_cf.domain.averages import AverageRecord
from src.neighborhood_cf.domain.similarity import item_similarities, user_similarities
from src.neighborhood_cf.evaluation.leave_one_out import LeaveOneOutResult, leave_one_out

MIN_RATING = 1.0
MAX_RATING = 5.0

USER_BASED = "user-based"
ITEM_BASED = "item-based"


class PredictorConfigError(ValueError):
    """Raised when a predictor is constructed with an unusable configuration."""


@dataclass
class RunStatistics:
    """
    Counters accumulated over one leave-one-out run.

    `mae` and `rmse` stay 0.0 until the run finishes and are NaN when no
    cell was scored. `mae` is exactly `total_errors / predictions_made`.
    """
    predictions_made: int = 0
    r_less_than_one: int = 0
    r_greater_five: int = 0
    no_valid_neighbors: int = 0
    total_neighbours: int = 0
    total_errors: float = 0.0
    mae: float = 0.0
    rmse: float = 0.0

    @property
    def average_neighbourhood_size(self) -> float:
        if self.predictions_made == 0:
            return float("nan")
        return self.total_neighbours / self.predictions_made


class Neighbor(NamedTuple):
    similarity: float
    rating: float
    peer_avg: Optional[float] = None


def select_neighbors(candidates: Sequence[Neighbor], k: int) -> List[Neighbor]:
    """
    Top-k candidates by similarity, highest first.

    `sorted` is stable, so equal scores keep their encounter order.
    """
    ranked = sorted(candidates, key=lambda n: n.similarity, reverse=True)
    return ranked[: min(k, len(ranked))]


def clamp_rating(value: float, stats: RunStatistics) -> float:
    """Force `value` into [1, 5], counting each clamp in `stats`."""
    if value > MAX_RATING:
        stats.r_greater_five += 1
        return MAX_RATING
    if value < MIN_RATING:
        stats.r_less_than_one += 1
        return MIN_RATING
    return value


class CFPredictor(ABC):
    """
    Neighborhood rating predictor evaluated with leave-one-out.

    Subclasses supply the similarity vector for a hidden cell and the
    prediction formula; neighbor filtering, the neighborhood cap and the
    numeric fallbacks are shared here.
    """

    mode: str = ""

    def __init__(
        self,
        neighborhood_size: int,
        similarity_threshold: float = 0.0,
        absolute_similarity: bool = False,
    ) -> None:
        if isinstance(neighborhood_size, bool) or int(neighborhood_size) != neighborhood_size:
            raise PredictorConfigError(f"neighborhood_size must be an integer, got {neighborhood_size!r}")
        if neighborhood_size < 1:
            raise PredictorConfigError(f"neighborhood_size must be >= 1, got {neighborhood_size}")
        if math.isnan(float(similarity_threshold)):
            raise PredictorConfigError("similarity_threshold must not be NaN")

        self.neighborhood_size = int(neighborhood_size)
        self.similarity_threshold = float(similarity_threshold)
        self.absolute_similarity = bool(absolute_similarity)
        self.stats = RunStatistics()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(neighborhood_size={self.neighborhood_size}, "
            f"similarity_threshold={self.similarity_threshold}, "
            f"absolute_similarity={self.absolute_similarity})"
        )

    @abstractmethod
    def compute_similarities(
        self,
        ratings: np.ndarray,
        averages: List[AverageRecord],
        user: int,
        item: int,
    ) -> np.ndarray:
        """Similarity vector for the hidden cell (user, item)."""

    @abstractmethod
    def predict(
        self,
        user: int,
        item: int,
        ratings: np.ndarray,
        similarities: np.ndarray,
        averages: List[AverageRecord],
    ) -> float:
        """Clamped prediction for the hidden cell (user, item)."""

    def evaluate(self, ratings: np.ndarray) -> LeaveOneOutResult:
        """Run leave-one-out over every rated cell; counters start from zero."""
        self.stats = RunStatistics()
        return leave_one_out(self, ratings)

    def _admissible(self, similarities: np.ndarray) -> np.ndarray:
        # Thresholding only; the signed scores are kept for ranking and weighting.
        scores = np.abs(similarities) if self.absolute_similarity else similarities
        return scores > self.similarity_threshold

    def _neighbourhood(self, candidates: Sequence[Neighbor]) -> List[Neighbor]:
        if not candidates:
            self.stats.no_valid_neighbors += 1
            return []
        neighbors = select_neighbors(candidates, self.neighborhood_size)
        self.stats.total_neighbours += len(neighbors)
        return neighbors

    def _finish(self, numerator: float, denominator: float, base: float, fallback: float) -> float:
        if denominator == 0:
            return fallback
        prediction = base + numerator / denominator
        if not math.isfinite(prediction):
            return fallback
        return clamp_rating(prediction, self.stats)


class UserBasedPredictor(CFPredictor):
    """Pearson-weighted deviation from the target user's mean."""

    mode = USER_BASED

    def compute_similarities(self, ratings, averages, user, item):
        return user_similarities(ratings, averages, user)

    def predict(self, user, item, ratings, similarities, averages):
        target_avg = averages[user].avg
        admissible = self._admissible(similarities)

        candidates = [
            Neighbor(float(similarities[b]), float(ratings[b, item]), averages[b].avg)
            for b in range(ratings.shape[0])
            if b != user and ratings[b, item] != 0 and admissible[b]
        ]
        neighbors = self._neighbourhood(candidates)
        if not neighbors:
            return target_avg

        numerator = sum(n.similarity * (n.rating - n.peer_avg) for n in neighbors)
        denominator = sum(n.similarity for n in neighbors)
        return self._finish(numerator, denominator, base=target_avg, fallback=target_avg)


class ItemBasedPredictor(CFPredictor):
    """Adjusted-cosine weighted average of the user's own ratings on similar items."""

    mode = ITEM_BASED

    def compute_similarities(self, ratings, averages, user, item):
        return item_similarities(ratings, averages, item)

    def predict(self, user, item, ratings, similarities, averages):
        target_avg = averages[user].avg
        admissible = self._admissible(similarities)
        user_ratings = ratings[user]

        candidates = [
            Neighbor(float(similarities[j]), float(user_ratings[j]))
            for j in range(ratings.shape[1])
            if j != item and user_ratings[j] != 0 and admissible[j]
        ]
        neighbors = self._neighbourhood(candidates)
        if not neighbors:
            return target_avg

        # Not re-centered on the user's mean, unlike the user-based formula.
        numerator = sum(n.similarity * n.rating for n in neighbors)
        denominator = sum(abs(n.similarity) for n in neighbors)
        return self._finish(numerator, denominator, base=0.0, fallback=target_avg)


_PREDICTORS = {
    "user": UserBasedPredictor,
    USER_BASED: UserBasedPredictor,
    "item": ItemBasedPredictor,
    ITEM_BASED: ItemBasedPredictor,
}


def make_predictor(
    mode: str,
    neighborhood_size: int,
    similarity_threshold: float = 0.0,
    absolute_similarity: bool = False,
) -> CFPredictor:
    try:
        cls = _PREDICTORS[mode.strip().lower()]
    except KeyError:
        raise PredictorConfigError(
            f"Unknown predictor mode {mode!r}. Expected one of {sorted(_PREDICTORS)}"
        ) from None
    return cls(neighborhood_size, similarity_threshold, absolute_similarity)
