"""Validate one or more entity score files.

Usage: python scripts/validate_scores.py entity-scores/*.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from scorecard.config import BatchConfig, get_settings
from scorecard.logging_config import configure_logging
from scorecard.score_batch import FileValidation, ScoreCalculator

LOGGER = logging.getLogger("scorecard.validate")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate entity score files.")
    parser.add_argument("files", nargs="+", help="Entity score JSON files to validate.")
    parser.add_argument(
        "--placeholder-marker",
        default=None,
        help="Marker that flags unfinished self-assessment comments (default: from settings).",
    )
    return parser.parse_args(argv)


def render_results(results: List[FileValidation]) -> List[str]:
    lines: List[str] = []
    errors = warnings = 0
    for outcome in results:
        lines.append(f"Validating score file: {outcome.source}")
        if outcome.input_error or outcome.report is None:
            errors += 1
            lines.append(f"  ERROR: {outcome.input_error}")
            continue
        for message in outcome.report.errors:
            lines.append(f"  ERROR: {message}")
        for message in outcome.report.warnings:
            lines.append(f"  WARNING: {message}")
        if outcome.report.valid and not outcome.report.warnings:
            lines.append("  All validations passed!")
        errors += len(outcome.report.errors)
        warnings += len(outcome.report.warnings)
    lines.append(f"Summary: {errors} errors, {warnings} warnings")
    return lines


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(get_settings())
    config = BatchConfig.from_settings(get_settings())
    if args.placeholder_marker is not None:
        config = config.model_copy(update={"placeholder_marker": args.placeholder_marker})

    try:
        results = ScoreCalculator(config).validate_files(args.files)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Validation run failed: %s", exc)
        return 1

    for line in render_results(results):
        print(line)
    return 0 if all(outcome.valid for outcome in results) else 1


if __name__ == "__main__":
    sys.exit(main())
