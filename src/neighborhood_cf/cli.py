from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

import pandas as pd

from src.neighborhood_cf.config import load_app_config, override
from src.neighborhood_cf.data.load_ratings import RatingsFormatError, load_ratings_file
from src.neighborhood_cf.domain.predictors import (
    ITEM_BASED,
    USER_BASED,
    PredictorConfigError,
    make_predictor,
)
from src.neighborhood_cf.evaluation.report import append_run_record, format_run_record
from src.neighborhood_cf.evaluation.sweep import default_sweep, run_sweep
from src.neighborhood_cf.logging_utils import configure_logger, set_package_level

logger = configure_logger(__name__)

_MODES = {"user": [USER_BASED], "item": [ITEM_BASED], "both": [ITEM_BASED, USER_BASED]}


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Leave-one-out MAE evaluation of neighborhood CF predictors")
    p.add_argument("--data", type=Path, default=None, help="Ratings matrix file (default: $CF_DATA_PATH)")
    p.add_argument("--header-lines", type=int, default=None, help="Header rows after the 'N M' line")
    p.add_argument("--mode", choices=sorted(_MODES), default="user", help="Which predictor(s) to evaluate")

    # Single run
    p.add_argument("--neighborhood-size", type=int, default=25, help="Neighbourhood size cap (default: 25)")
    p.add_argument("--threshold", type=float, default=0.0, help="Admit neighbours with similarity > threshold")
    p.add_argument("--absolute", action="store_true", help="Threshold on |similarity|")

    # Sweep
    p.add_argument("--sweep", action="store_true", help="Run the standard parameter sweep instead of one run")
    p.add_argument("--log-dir", type=Path, default=None, help="Append experiment logs here (default: $CF_LOG_DIR)")
    p.add_argument("--no-log-files", action="store_true", help="Do not write the experiment log files")
    p.add_argument("--output-csv", type=Path, default=None, help="Write the sweep summary table to CSV")
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    try:
        config = override(
            load_app_config(),
            data_path=args.data,
            log_dir=args.log_dir,
            header_lines=args.header_lines,
        )
    except RuntimeError as exc:
        logger.error(
            "cli_failure: invalid configuration.",
            extra={"event": "cli_failure", "error_type": type(exc).__name__},
        )
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    set_package_level(config.log_level)
    log_dir = None if args.no_log_files else config.log_dir

    try:
        data = load_ratings_file(config.data_path, header_lines=config.header_lines)
    except (FileNotFoundError, RatingsFormatError) as exc:
        logger.error(
            "cli_failure: could not load ratings.",
            extra={"event": "cli_failure", "error_type": type(exc).__name__, "path": str(config.data_path)},
        )
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    modes = _MODES[args.mode]

    if args.sweep:
        configs = [cfg for mode in modes for cfg in default_sweep(mode)]
        summary = run_sweep(data.ratings, configs, log_dir=log_dir)

        print("\nSweep Summary:")
        with pd.option_context("display.max_rows", None, "display.width", 200):
            print(summary.drop(columns=["title"]).to_string(index=False))

        if args.output_csv is not None:
            args.output_csv.parent.mkdir(parents=True, exist_ok=True)
            summary.to_csv(args.output_csv, index=False)
            print(f"\nSummary written to {args.output_csv}")
        return

    for mode in modes:
        try:
            predictor = make_predictor(mode, args.neighborhood_size, args.threshold, args.absolute)
        except PredictorConfigError as exc:
            print(f"error: {exc}", file=sys.stderr)
            sys.exit(1)

        start = time.perf_counter()
        result = predictor.evaluate(data.ratings)
        run_time = time.perf_counter() - start

        record = format_run_record(repr(predictor), result.stats, run_time)
        if log_dir is not None:
            append_run_record(log_dir, mode, record)
        print(record)


if __name__ == "__main__":
    main()
