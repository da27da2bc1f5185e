"""
Loading of the whitespace-separated ratings matrix into numpy.

File layout:

    N M                  user count, item count
    <header line>        reserved, skipped (`header_lines` of them)
    <header line>
    r11 r12 ... r1M      N rows of M ratings, 0 = unrated, else 1..5
    ...
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Sequence, Union

import numpy as np

from src.neighborhood_cf.logging_utils import configure_logger

logger = configure_logger(__name__)

DEFAULT_HEADER_LINES = 2


class RatingsFormatError(ValueError):
    """Raised when a ratings file does not match the expected layout."""


@dataclass(frozen=True)
class RatingsData:
    n_users: int
    n_items: int
    ratings: np.ndarray


def _fail(message: str, **extra: Any) -> None:
    logger.error(message, extra={"event": "ratings_format_error", **extra})
    raise RatingsFormatError(message)


def _parse_count(token: Any, name: str) -> int:
    try:
        value = float(token)
    except (TypeError, ValueError):
        _fail(f"{name} must be numeric, got {token!r}", line=1)
    if not value.is_integer() or value < 0:
        _fail(f"{name} must be a non-negative integer, got {token!r}", line=1)
    return int(value)


def parse_ratings_rows(
    rows: Sequence[Sequence[Any]],
    header_lines: int = DEFAULT_HEADER_LINES,
) -> RatingsData:
    """
    Build a RatingsData from already tokenized rows.

    The first row's two leading values give N and M; `header_lines` rows
    after it are skipped; the next N rows must each hold M numeric tokens.
    Rows beyond the N-th are ignored.
    """
    if not rows or len(rows[0]) < 2:
        _fail("first row must contain the user and item counts")

    n_users = _parse_count(rows[0][0], "user count")
    n_items = _parse_count(rows[0][1], "item count")

    first = 1 + header_lines
    body = list(rows[first : first + n_users])
    if len(body) < n_users:
        _fail(
            f"expected {n_users} rating rows, found {len(body)}",
            rows=len(body),
        )

    ratings = np.zeros((n_users, n_items), dtype=float)
    for offset, row in enumerate(body):
        line_no = first + offset + 1
        if len(row) != n_items:
            _fail(
                f"line {line_no}: expected {n_items} ratings, found {len(row)}",
                line=line_no,
                columns=len(row),
            )
        try:
            ratings[offset] = [float(token) for token in row]
        except (TypeError, ValueError):
            _fail(f"line {line_no}: non-numeric rating", line=line_no)

    extra_rows = len(rows) - first - n_users
    if extra_rows > 0:
        logger.warning(
            "trailing_rows_ignored",
            extra={"event": "ratings_trailing_rows", "rows": extra_rows},
        )

    logger.info(
        "ratings_parsed",
        extra={"event": "ratings_parsed", "rows": n_users, "columns": n_items},
    )
    return RatingsData(n_users=n_users, n_items=n_items, ratings=ratings)


def read_rows(path: Union[str, Path]) -> List[List[str]]:
    text = Path(path).read_text(encoding="utf-8")
    return [line.split() for line in text.strip().splitlines()]


def load_ratings_file(
    path: Union[str, Path],
    header_lines: int = DEFAULT_HEADER_LINES,
) -> RatingsData:
    path = Path(path)
    if not path.is_file():
        logger.error(
            "ratings_file_missing",
            extra={"event": "ratings_file_missing", "path": str(path)},
        )
        raise FileNotFoundError(f"Ratings file not found: {path}")

    logger.info("load_ratings", extra={"event": "load_ratings", "path": str(path)})
    return parse_ratings_rows(read_rows(path), header_lines=header_lines)
