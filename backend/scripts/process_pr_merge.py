"""Post-merge CI step: validate changed score files, recalculate, publish.

Intended to run in a CI job right after a pull request lands on the
publish branch. Prints a comment body suitable for posting back to the PR.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from scorecard.config import BatchConfig, get_settings
from scorecard.logging_config import configure_logging
from scorecard.publisher import GitClient, PublishConfig, PullRequestMergeProcessor, generate_pr_comment

LOGGER = logging.getLogger("scorecard.pr_merge")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Process entity score changes after a PR merge.")
    parser.add_argument(
        "--repo-dir",
        default=".",
        help="Git working tree containing the score files (default: current directory).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(get_settings())
    settings = get_settings()
    processor = PullRequestMergeProcessor(
        BatchConfig.from_settings(settings),
        PublishConfig.from_settings(settings),
        git=GitClient(Path(args.repo_dir)),
    )

    try:
        result = processor.process()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Processing failed: %s", exc)
        return 1

    for outcome in result.invalid_files:
        LOGGER.error("Validation failed for %s", outcome.source)
        if outcome.input_error:
            LOGGER.error("  %s", outcome.input_error)
        elif outcome.report is not None:
            for message in outcome.report.errors:
                LOGGER.error("  %s", message)
    for failure in result.record_failures:
        LOGGER.error("%s", failure.describe())

    print(generate_pr_comment(result))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
