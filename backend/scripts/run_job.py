#!/usr/bin/env python
"""Run one background job by id.

Intended for cron or an operator shell. Exits non-zero if the job still
fails after its retries.

Usage:
    python -m scripts.run_job --list
    python -m scripts.run_job networth-snapshot
    python -m scripts.run_job price-refresh --verbose
    python -m scripts.run_job connection-sync --no-retry-delay
"""

import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def print_jobs() -> None:
    from jobs.registry import JOB_DEFINITIONS

    print(f"{'JOB':<20} {'CRON':<16} {'QUEUE':<14} RETRIES")
    for job in JOB_DEFINITIONS.values():
        delays = ",".join(str(d) for d in job.retry_policy.delays_seconds)
        print(
            f"{job.job_id:<20} {job.cron:<16} {job.queue:<14} "
            f"{job.retry_policy.attempts} ({delays}s)"
        )
        print(f"    {job.description}")


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args and run the job."""
    parser = argparse.ArgumentParser(description="Run a background sync job.")
    parser.add_argument("job_id", nargs="?", help="Job to run (see --list)")
    parser.add_argument("--list", action="store_true", help="List jobs and exit")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log at DEBUG level"
    )
    parser.add_argument(
        "--no-retry-delay",
        action="store_true",
        help="Retry setup failures immediately instead of waiting",
    )
    args = parser.parse_args(argv)

    load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

    # Settings are read at import time, so import after .env is loaded
    from database import init_db
    from jobs.registry import JOB_DEFINITIONS, run_job
    from logging_config import setup_logging

    setup_logging("DEBUG" if args.verbose else None)

    if args.list:
        print_jobs()
        return 0

    if not args.job_id:
        parser.error("job_id is required unless --list is given")
    if args.job_id not in JOB_DEFINITIONS:
        valid = ", ".join(JOB_DEFINITIONS)
        print(f"Error: Unknown job '{args.job_id}'. Valid jobs: {valid}")
        return 2

    init_db()
    sleep = (lambda _seconds: None) if args.no_retry_delay else time.sleep
    try:
        result = run_job(args.job_id, sleep=sleep)
    except Exception:
        logger.exception("Job %s failed", args.job_id)
        return 1

    print(f"{args.job_id}: {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
