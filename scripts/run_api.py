"""
Serve the quote aggregation API with uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from app.scraping.logging_utils import configure_logging
from db.config import load_env_files

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    load_env_files()
    parser = argparse.ArgumentParser(description="Run the quote aggregation API.")
    parser.add_argument("--host", default=os.getenv("API_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("API_PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Restart on source changes.")
    args = parser.parse_args(argv)

    configure_logging()
    logger.info("Serving API on %s:%s", args.host, args.port)
    # log_config=None keeps the JSON log handlers installed above.
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
