"""CLI entry-point for the PQ event analyzer.

Usage examples
--------------
# Batch mode (CSV input):
python -m src.analyzer.cli --input data/events.csv

# JSONL input, rules only (no regrouping):
python -m src.analyzer.cli --input data/events.jsonl --no-grouping
"""

from __future__ import annotations

import argparse

from src.analyzer.pipeline import run_pipeline
from src.shared.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pq-analyzer",
        description="PQ event analyzer: false-event scoring, rules and mother/child grouping",
    )
    p.add_argument(
        "--input",
        default="data/events.csv",
        help="Input file (CSV or JSONL). Format auto-detected by extension. "
             "Default: data/events.csv",
    )
    p.add_argument(
        "--out-dir",
        default="out",
        help="Output directory. Default: out/",
    )
    p.add_argument(
        "--config-dir",
        default="config",
        help="Directory with rules.yaml and detector.yaml. Default: config/",
    )
    p.add_argument(
        "--no-grouping",
        action="store_true",
        default=False,
        help="Skip automatic mother/child grouping.",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Also write log records to this file.",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    run_pipeline(
        input_path=args.input,
        out_dir=args.out_dir,
        config_dir=args.config_dir,
        grouping=not args.no_grouping,
    )


if __name__ == "__main__":
    main()
