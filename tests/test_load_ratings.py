from __future__ import annotations

import logging

import numpy as np
import pytest

import src.neighborhood_cf.data.load_ratings as mod
from src.neighborhood_cf.data.load_ratings import (
    RatingsFormatError,
    load_ratings_file,
    parse_ratings_rows,
)

SAMPLE = """3 4
alice bob carol
m1 m2 m3 m4
5 0 3 1
0 2 0 4
1 1 0 0
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _attach_caplog_to_logger(caplog, logger: logging.Logger) -> None:
    """The module logger does not propagate; hook caplog onto it directly."""
    logger.addHandler(caplog.handler)


def _has_event(caplog, event_name: str) -> bool:
    return any(getattr(rec, "event", None) == event_name for rec in caplog.records)


@pytest.fixture
def ratings_file(tmp_path):
    path = tmp_path / "ratings.txt"
    path.write_text(SAMPLE, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_load_ratings_file_parses_counts_and_matrix(ratings_file):
    data = load_ratings_file(ratings_file)

    assert (data.n_users, data.n_items) == (3, 4)
    np.testing.assert_array_equal(
        data.ratings,
        [[5, 0, 3, 1], [0, 2, 0, 4], [1, 1, 0, 0]],
    )
    assert data.ratings.dtype == float


def test_header_line_count_is_configurable():
    rows = [["2", "2"], ["4", "5"], ["0", "3"]]

    data = parse_ratings_rows(rows, header_lines=0)

    np.testing.assert_array_equal(data.ratings, [[4, 5], [0, 3]])


def test_numeric_grid_is_accepted():
    rows = [[2, 3], [0, 0, 0], [0, 0, 0], [1, 0, 2], [0, 5, 0]]

    data = parse_ratings_rows(rows)

    assert data.ratings.shape == (2, 3)


def test_trailing_rows_are_ignored():
    rows = [["1", "2"], ["h"], ["h"], ["3", "4"], ["5", "5"]]

    data = parse_ratings_rows(rows)

    np.testing.assert_array_equal(data.ratings, [[3, 4]])


@pytest.mark.parametrize(
    "rows",
    [
        [],
        [["3"]],
        [["x", "2"], ["h"], ["h"]],
        [["1", "2"], ["h"], ["h"]],
        [["1", "3"], ["h"], ["h"], ["1", "2"]],
        [["1", "2"], ["h"], ["h"], ["1", "five"]],
    ],
    ids=["empty", "no-item-count", "bad-count", "missing-rows", "short-row", "non-numeric"],
)
def test_malformed_input_raises(rows):
    with pytest.raises(RatingsFormatError):
        parse_ratings_rows(rows)


def test_format_error_is_logged(caplog):
    _attach_caplog_to_logger(caplog, mod.logger)
    try:
        with pytest.raises(RatingsFormatError):
            parse_ratings_rows([["1", "2"], ["h"], ["h"], ["1"]])
        assert _has_event(caplog, "ratings_format_error")
    finally:
        mod.logger.removeHandler(caplog.handler)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_ratings_file(tmp_path / "nope.txt")
