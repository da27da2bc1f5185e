from __future__ import annotations

from pathlib import Path
from typing import Union

from src.neighborhood_cf.domain.predictors import ITEM_BASED, USER_BASED, RunStatistics

LOG_FILES = {
    USER_BASED: "user_based_log.txt",
    ITEM_BASED: "item_based_log.txt",
}


def format_run_record(title: str, stats: RunStatistics, run_time: float) -> str:
    """Human-readable block for one evaluation run."""
    return (
        f"Experiment: {title}\n"
        f"Total Predictions: {stats.predictions_made}\n"
        f"Predictions Less Than 1: {stats.r_less_than_one}\n"
        f"Predictions Greater Than 5: {stats.r_greater_five}\n"
        f"No Valid Neighbours Cases: {stats.no_valid_neighbors}\n"
        f"Average Neighbourhood Size: {stats.average_neighbourhood_size}\n"
        f"MAE: {stats.mae}\n"
        f"RMSE: {stats.rmse}\n"
        f"Run Time: {run_time:.2f} seconds\n"
        "-----------------------------------\n"
    )


def append_run_record(log_dir: Union[str, Path], mode: str, text: str) -> Path:
    """Append `text` to the per-mode experiment log under `log_dir`."""
    try:
        filename = LOG_FILES[mode]
    except KeyError:
        raise ValueError(f"No experiment log for mode {mode!r}") from None

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / filename
    with path.open("a", encoding="utf-8") as fh:
        fh.write(text)
    return path
