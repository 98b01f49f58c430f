"""Aggregate every entity score file into the dashboard dataset.

Usage: python scripts/calculate_scores.py --entity-scores-dir ./scores --output ./output/all.json --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from scorecard.config import BatchConfig, get_settings
from scorecard.exceptions import ScorecardError
from scorecard.logging_config import configure_logging
from scorecard.score_batch import ScoreCalculator, summarize

LOGGER = logging.getLogger("scorecard.calculate")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Calculate aggregated scores from entity assessment files.")
    parser.add_argument(
        "--entity-scores-dir",
        default=settings.entity_scores_dir,
        help=f"Directory containing entity score files (default: {settings.entity_scores_dir}).",
    )
    parser.add_argument(
        "--output",
        default=settings.output_file,
        help=f"Output file path (default: {settings.output_file}).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=settings.verbose,
        help="Log every processed entity.",
    )
    parser.add_argument(
        "--include-unscored-areas",
        action="store_true",
        default=settings.include_unscored_areas,
        help="Add unscoredAreaIds to each output record.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(get_settings(), verbose=args.verbose)
    config = BatchConfig.from_settings(get_settings()).model_copy(
        update={
            "entity_scores_dir": Path(args.entity_scores_dir),
            "output_file": Path(args.output),
            "verbose": args.verbose,
            "include_unscored_areas": args.include_unscored_areas,
        }
    )

    try:
        result = ScoreCalculator(config).calculate_all()
    except ScorecardError as exc:
        LOGGER.error("Score calculation failed: %s", exc)
        return 1

    for failure in result.errors:
        print(failure.describe())
    print(f"Score calculation complete! Generated scores for {result.total_entities} entities")
    for line in summarize(result.scores).lines():
        print(line)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
