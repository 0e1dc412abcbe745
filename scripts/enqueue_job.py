"""
Enqueue one job into a local orchestrator and drain it from CLI.
"""

from __future__ import annotations

import argparse
import json

from app.jobs.types import QUEUE_DEFAULT
from app.jobs.worker import get_task_orchestrator
from app.scraping.logging_utils import configure_logging
from db.config import load_env_files


def main() -> int:
    parser = argparse.ArgumentParser(description="Enqueue and run a single pipeline job.")
    parser.add_argument("job_type", help="Job type, e.g. scrape:all or quote:scrape.")
    parser.add_argument(
        "--payload",
        default="{}",
        help='JSON payload, e.g. \'{"target_id": "..."}\'.',
    )
    parser.add_argument("--queue", default=QUEUE_DEFAULT, help="Queue name (critical, default, low).")
    args = parser.parse_args()

    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as exc:
        parser.error(f"--payload is not valid JSON: {exc}")

    load_env_files()
    configure_logging()
    orchestrator = get_task_orchestrator()
    if args.job_type not in orchestrator.job_types:
        parser.error(f"Unknown job type '{args.job_type}'. Known: {', '.join(orchestrator.job_types)}")

    job = orchestrator.enqueue(args.job_type, payload, args.queue)
    processed = orchestrator.run_until_idle(wait_for_delayed=True)
    print(
        json.dumps(
            {
                "job": job.describe(),
                "processed": processed,
                "dead_letters": [dead.describe() for dead in orchestrator.dead_letters],
                **orchestrator.stats(),
            },
            indent=2,
        )
    )
    return 1 if orchestrator.dead_letters else 0


if __name__ == "__main__":
    raise SystemExit(main())
