from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from src.neighborhood_cf.domain.predictors import ITEM_BASED, USER_BASED, make_predictor
from src.neighborhood_cf.evaluation.report import append_run_record, format_run_record
from src.neighborhood_cf.logging_utils import configure_logger

logger = configure_logger(__name__)

SWEEP_COLUMNS = [
    "title",
    "mode",
    "neighborhood_size",
    "similarity_threshold",
    "absolute_similarity",
    "predictions_made",
    "r_less_than_one",
    "r_greater_five",
    "no_valid_neighbors",
    "average_neighbourhood_size",
    "mae",
    "rmse",
    "run_time_s",
]

# (neighbourhood sizes for the size sweeps, fixed size for the threshold sweeps)
_GRIDS: Dict[str, tuple] = {
    USER_BASED: (range(5, 101, 5), 25),
    ITEM_BASED: (range(25, 501, 25), 300),
}


def _accumulated_thresholds(step: float = 0.1, stop: float = 1.0) -> List[float]:
    # Repeated float addition, so the last value is 0.9999999999999999, not 1.0.
    thresholds = []
    t = 0.0
    while t <= stop:
        thresholds.append(t)
        t += step
    return thresholds


THRESHOLDS = _accumulated_thresholds()


@dataclass(frozen=True)
class SweepConfig:
    mode: str
    neighborhood_size: int
    similarity_threshold: float = 0.0
    absolute_similarity: bool = False
    title: str = ""


def default_sweep(mode: str) -> List[SweepConfig]:
    """
    The standard experiment grid for one mode, in run order:

    1. neighbourhood size sweep, threshold 0, signed similarities
    2. threshold sweep 0.0..1.0 at the fixed size, signed similarities
    3. the same threshold sweep on absolute similarities
    4. neighbourhood size sweep, threshold 0, absolute similarities
    """
    try:
        sizes, fixed_size = _GRIDS[mode]
    except KeyError:
        raise ValueError(f"No default sweep for mode {mode!r}") from None

    configs: List[SweepConfig] = []
    for k in sizes:
        configs.append(SweepConfig(mode, k, 0.0, False, f"{mode}, {k} neighbours, ignore negative similarities"))
    for t in THRESHOLDS:
        configs.append(
            SweepConfig(
                mode, fixed_size, t, False,
                f"{mode}, {fixed_size} neighbours, ignore similarities less than {t:.1f}",
            )
        )
    for t in THRESHOLDS:
        configs.append(
            SweepConfig(
                mode, fixed_size, t, True,
                f"{mode}, {fixed_size} neighbours, take absolute value of similarities, "
                f"ignore similarities less than {t:.1f}",
            )
        )
    for k in sizes:
        configs.append(
            SweepConfig(
                mode, k, 0.0, True,
                f"{mode}, {k} neighbours, take absolute similarities, ignore negative similarities",
            )
        )
    return configs


def run_sweep(
    ratings: np.ndarray,
    configs: Iterable[SweepConfig],
    *,
    log_dir: Optional[Union[str, Path]] = None,
) -> pd.DataFrame:
    """
    Evaluate one fresh predictor per configuration.

    Returns one row per run (columns: SWEEP_COLUMNS). When `log_dir` is
    given, each run is also appended to the per-mode experiment log.
    """
    records: List[dict] = []

    for cfg in configs:
        predictor = make_predictor(
            cfg.mode,
            cfg.neighborhood_size,
            cfg.similarity_threshold,
            cfg.absolute_similarity,
        )
        title = cfg.title or repr(predictor)

        start = time.perf_counter()
        result = predictor.evaluate(ratings)
        run_time = time.perf_counter() - start

        stats = result.stats
        if log_dir is not None:
            append_run_record(log_dir, predictor.mode, format_run_record(title, stats, run_time))

        logger.info(
            "sweep_run_done",
            extra={
                "event": "sweep.run",
                "mode": predictor.mode,
                "neighborhood_size": predictor.neighborhood_size,
                "similarity_threshold": predictor.similarity_threshold,
                "absolute_similarity": predictor.absolute_similarity,
                "mae": stats.mae,
                "run_time_s": round(run_time, 4),
            },
        )

        records.append(
            {
                "title": title,
                "mode": predictor.mode,
                "neighborhood_size": predictor.neighborhood_size,
                "similarity_threshold": predictor.similarity_threshold,
                "absolute_similarity": predictor.absolute_similarity,
                "predictions_made": stats.predictions_made,
                "r_less_than_one": stats.r_less_than_one,
                "r_greater_five": stats.r_greater_five,
                "no_valid_neighbors": stats.no_valid_neighbors,
                "average_neighbourhood_size": stats.average_neighbourhood_size,
                "mae": stats.mae,
                "rmse": stats.rmse,
                "run_time_s": run_time,
            }
        )

    logger.info("sweep_finished", extra={"event": "sweep.finish", "runs": len(records)})
    return pd.DataFrame.from_records(records, columns=SWEEP_COLUMNS)
