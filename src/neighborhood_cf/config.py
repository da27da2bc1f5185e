from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.neighborhood_cf.logging_utils import configure_logger

logger = configure_logger(__name__)

DEFAULT_DATA_PATH = "data/assignment2-data.txt"
DEFAULT_LOG_DIR = "logs"
DEFAULT_HEADER_LINES = 2


@dataclass(frozen=True)
class AppConfig:
    data_path: Path
    log_dir: Path
    header_lines: int
    log_level: int


def _parse_log_level(raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise RuntimeError(f"Unknown log level: {raw!r}")
    return level


def load_app_config(env_prefix: str = "CF_") -> AppConfig:
    """
    Build the runtime configuration from environment variables.

    Variables (all optional):
      CF_DATA_PATH     ratings matrix text file
      CF_LOG_DIR       directory for the human-readable experiment logs
      CF_HEADER_LINES  header rows between the "N M" line and the data
      CF_LOG_LEVEL     DEBUG / INFO / WARNING ...
    """
    # Avoid loading .env during pytest (tests control env explicitly)
    if "PYTEST_CURRENT_TEST" not in os.environ:
        load_dotenv()

    data_path = Path(os.getenv(env_prefix + "DATA_PATH", DEFAULT_DATA_PATH))
    log_dir = Path(os.getenv(env_prefix + "LOG_DIR", DEFAULT_LOG_DIR))

    raw_header_lines = os.getenv(env_prefix + "HEADER_LINES", str(DEFAULT_HEADER_LINES))
    try:
        header_lines = int(raw_header_lines)
    except ValueError as exc:
        logger.error(
            "config_error: header line count is not an integer.",
            extra={"event": "config_error", "error_type": type(exc).__name__},
        )
        raise RuntimeError(
            f"{env_prefix}HEADER_LINES must be an integer, got {raw_header_lines!r}"
        ) from exc

    if header_lines < 0:
        raise RuntimeError(f"{env_prefix}HEADER_LINES must be >= 0, got {header_lines}")

    log_level = _parse_log_level(os.getenv(env_prefix + "LOG_LEVEL", "INFO"))

    logger.info(
        "config_loaded",
        extra={"event": "config_loaded", "path": str(data_path)},
    )

    return AppConfig(
        data_path=data_path,
        log_dir=log_dir,
        header_lines=header_lines,
        log_level=log_level,
    )


def override(
    config: AppConfig,
    *,
    data_path: Optional[Path] = None,
    log_dir: Optional[Path] = None,
    header_lines: Optional[int] = None,
) -> AppConfig:
    """Return a copy of `config` with any non-None CLI values applied."""
    return AppConfig(
        data_path=data_path if data_path is not None else config.data_path,
        log_dir=log_dir if log_dir is not None else config.log_dir,
        header_lines=header_lines if header_lines is not None else config.header_lines,
        log_level=config.log_level,
    )
