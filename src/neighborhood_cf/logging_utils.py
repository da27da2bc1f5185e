from __future__ import annotations

import json
import logging
import math
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter for evaluation runs.

    One JSON object per line, so sweep logs can be grepped or loaded
    into pandas with `pd.read_json(..., lines=True)`.
    """

    _extra_keys: Iterable[str] = (
        "event",
        # Run configuration
        "mode",
        "neighborhood_size",
        "similarity_threshold",
        "absolute_similarity",
        # Run statistics
        "predictions_made",
        "no_valid_neighbors",
        "r_less_than_one",
        "r_greater_five",
        "average_neighbourhood_size",
        "mae",
        "rmse",
        "run_time_s",
        "runs",
        "user",
        # Data loading
        "path",
        "rows",
        "columns",
        "line",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._extra_keys:
            if hasattr(record, key):
                payload[key] = _json_safe(getattr(record, key))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _json_safe(value: Any) -> Any:
    # NaN MAE is a legal outcome; json.dumps would emit a bare NaN token.
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


def configure_logger(name: str = "neighborhood_cf", level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with JSON formatting.

    Repeated calls keep a single StreamHandler so modules importing each
    other never duplicate log lines.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def set_package_level(level: int, prefix: str = "src.neighborhood_cf") -> None:
    """Apply `level` to every already-configured logger under `prefix`."""
    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(level)
