"""
Run the task workers and the recurring scheduler from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading

from app.jobs.worker import get_task_orchestrator
from app.scheduler.jobs import build_scheduler
from app.scraping.logging_utils import configure_logging
from db.config import load_env_files

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run quote pipeline workers.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain the queues in this thread and exit instead of serving forever.",
    )
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Do not register the periodic scrape and cleanup sweeps.",
    )
    args = parser.parse_args()

    load_env_files()
    configure_logging()
    orchestrator = get_task_orchestrator()

    if args.once:
        processed = orchestrator.run_until_idle(wait_for_delayed=True)
        print(json.dumps({"processed": processed, **orchestrator.stats()}, indent=2))
        return 0

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    scheduler = None if args.no_scheduler else build_scheduler(orchestrator)
    orchestrator.start()
    if scheduler is not None:
        scheduler.start()
    logger.info("Worker running; press Ctrl+C to stop")
    try:
        stop.wait()
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=True)
        orchestrator.shutdown(wait=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
