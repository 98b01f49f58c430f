"""Run the scorecard HTTP service.

Usage: python scripts/serve_scores.py --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from scorecard.logging_config import configure_logging

LOGGER = logging.getLogger("scorecard.server")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve score validation and aggregation over HTTP.")
    parser.add_argument("--host", default=os.getenv("SCORECARD_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("SCORECARD_PORT", "8000")))
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    LOGGER.info("Starting scorecard service on %s:%s", args.host, args.port)

    import uvicorn

    uvicorn.run(
        "scorecard.main:app",
        host=args.host,
        port=args.port,
        log_level=os.getenv("SCORECARD_LOG_LEVEL", "info").lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
