from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure `import src...` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def toy_ratings() -> np.ndarray:
    """3 users x 5 items; user 1 closely tracks user 0, user 2 runs against both."""
    return np.array(
        [
            [5, 3, 1, 4, 0],
            [4, 3, 1, 4, 0],
            [2, 4, 5, 0, 1],
        ],
        dtype=float,
    )


@pytest.fixture
def seeded_ratings() -> np.ndarray:
    """8 x 10 random sparse matrix where every user keeps at least two ratings."""
    rng = np.random.default_rng(7)
    ratings = rng.integers(1, 6, size=(8, 10)).astype(float)
    holes = rng.random((8, 10)) < 0.35
    holes[:, :2] = False
    ratings[holes] = 0.0
    return ratings
