from __future__ import annotations

import math

import numpy as np
import pytest

from src.neighborhood_cf.domain.predictors import ItemBasedPredictor, UserBasedPredictor
from src.neighborhood_cf.evaluation.leave_one_out import round_rating


@pytest.fixture(params=[UserBasedPredictor, ItemBasedPredictor], ids=["user", "item"])
def predictor_cls(request):
    return request.param


def test_anticorrelated_pair_falls_back_for_every_cell(predictor_cls):
    predictor = predictor_cls(1, 0.0, False)

    result = predictor.evaluate(np.array([[5, 1], [1, 5]], dtype=float))
    stats = result.stats

    assert stats.predictions_made == 4
    assert stats.no_valid_neighbors == 4
    assert stats.total_neighbours == 0
    # each hidden cell is predicted as the owner's remaining rating
    np.testing.assert_array_equal(result.predictions, [[1.0, 5.0], [5.0, 1.0]])
    assert stats.mae == pytest.approx(4.0)


def test_all_zero_matrix_scores_nothing(predictor_cls):
    predictor = predictor_cls(5)

    result = predictor.evaluate(np.zeros((3, 3)))

    assert result.stats.predictions_made == 0
    assert math.isnan(result.stats.mae)
    assert math.isnan(result.stats.rmse)
    assert math.isnan(result.stats.average_neighbourhood_size)
    assert not result.predictions.any()


def test_self_consistent_matrix_has_zero_error(predictor_cls):
    ratings = np.array([[2, 2, 2], [4, 4, 4], [5, 5, 5]], dtype=float)

    result = predictor_cls(3).evaluate(ratings)

    assert result.stats.mae == 0.0
    np.testing.assert_array_equal(result.predictions, ratings)


def test_item_based_paired_columns_reproduce_every_rating():
    # columns 0/1 and 2/3 are identical; each user rates the two pairs apart
    ratings = np.array([[4, 4, 2, 2], [5, 5, 1, 1], [3, 3, 5, 5], [2, 2, 4, 4]], dtype=float)

    result = ItemBasedPredictor(3).evaluate(ratings)
    stats = result.stats

    np.testing.assert_array_equal(result.predictions, ratings)
    assert stats.mae == 0.0
    assert stats.predictions_made == 16
    assert stats.no_valid_neighbors == 0
    # only the twin column is positively similar
    assert stats.total_neighbours == 16
    assert stats.average_neighbourhood_size == 1.0


def test_single_shared_item_makes_a_full_strength_neighbour():
    ratings = np.array([[4, 2, 5, 0], [5, 1, 0, 3]], dtype=float)

    result = UserBasedPredictor(1).evaluate(ratings)
    stats = result.stats

    # with item 0 hidden the users share only item 1, both below their means,
    # so 3.5 + (5 - 3) overshoots the scale
    assert result.predictions[0, 0] == 5.0
    assert stats.r_greater_five >= 1
    # 2 + (4 - 11/3)
    assert result.predictions[1, 0] == 2.33
    # nobody else rated item 2, so that cell falls back to user 0's mean
    assert result.predictions[0, 2] == 3.0
    assert stats.no_valid_neighbors >= 1


def test_unrated_cells_stay_zero_and_input_is_untouched(predictor_cls, seeded_ratings):
    original = seeded_ratings.copy()

    result = predictor_cls(4).evaluate(seeded_ratings)

    np.testing.assert_array_equal(seeded_ratings, original)
    assert not result.predictions[original == 0].any()
    assert result.stats.predictions_made == int(np.count_nonzero(original))


def test_rated_cell_predictions_are_in_rating_scale(predictor_cls, seeded_ratings):
    result = predictor_cls(3, 0.0, True).evaluate(seeded_ratings)

    rated = result.predictions[seeded_ratings != 0]
    assert rated.min() >= 1.0
    assert rated.max() <= 5.0


def test_neighbourhood_totals_respect_cap(predictor_cls, seeded_ratings):
    k = 2
    stats = predictor_cls(k).evaluate(seeded_ratings).stats

    scored_with_neighbours = stats.predictions_made - stats.no_valid_neighbors
    assert stats.total_neighbours <= k * scored_with_neighbours
    assert stats.average_neighbourhood_size <= k


def test_mae_matches_total_error(predictor_cls, seeded_ratings):
    stats = predictor_cls(5).evaluate(seeded_ratings).stats

    assert stats.mae == stats.total_errors / stats.predictions_made


def test_rmse_is_reported_alongside_mae(predictor_cls, seeded_ratings):
    result = predictor_cls(5).evaluate(seeded_ratings)
    stats = result.stats

    rated = seeded_ratings != 0
    squared = (result.predictions[rated] - seeded_ratings[rated]) ** 2
    assert stats.rmse == pytest.approx(math.sqrt(squared.mean()))
    assert stats.rmse >= stats.mae - 1e-12


def test_evaluate_resets_counters_between_calls(seeded_ratings):
    predictor = UserBasedPredictor(3)

    first = predictor.evaluate(seeded_ratings).stats
    first_snapshot = (first.predictions_made, first.total_neighbours, first.mae)
    second = predictor.evaluate(seeded_ratings).stats

    assert (second.predictions_made, second.total_neighbours, second.mae) == first_snapshot


def test_user_based_cell_prediction_is_rounded(toy_ratings):
    result = UserBasedPredictor(2).evaluate(toy_ratings)

    # 8/3 + 1 rounded to two places
    assert result.predictions[0, 0] == 3.67


@pytest.mark.parametrize(
    "raw,expected",
    [
        (3.666666, 3.67),
        (0.125, 0.13),
        (2.0, 2.0),
        (4.994, 4.99),
    ],
)
def test_round_rating_is_half_up(raw, expected):
    assert round_rating(raw) == expected
