"""Job registry - schedules, queues and retry policies for the batch jobs.

The external scheduler reads ``JOB_DEFINITIONS`` for cron expressions and
calls ``run_job`` with a job id. ``run_job`` owns the retry loop for
setup failures; per-entity failures are handled inside each job and never
cause a retry.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from config import RetryPolicy, Settings, settings
from database import get_session_local
from integrations.exceptions import ProviderError
from services.connection_sync_service import ConnectionSyncService
from services.connection_sync_service import JOB_ID as CONNECTION_SYNC
from services.exceptions import BatchSetupError, EntityNotFoundError
from services.fund_price_service import FundPriceService
from services.fund_price_service import JOB_ID as FUND_PRICE_REFRESH
from services.net_worth_snapshot_service import JOB_ID as NETWORTH_SNAPSHOT
from services.net_worth_snapshot_service import NetWorthSnapshotService
from services.price_refresh_service import JOB_ID as PRICE_REFRESH
from services.price_refresh_service import PriceRefreshService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobDefinition:
    """A recurring job as the scheduler sees it."""

    job_id: str
    description: str
    cron: str
    queue: str
    retry_policy: RetryPolicy


def build_job_definitions(source: Optional[Settings] = None) -> dict[str, JobDefinition]:
    """Build job definitions from settings, in their nightly run order."""
    source = source or settings
    default_retry = RetryPolicy(
        attempts=source.JOB_RETRY_ATTEMPTS,
        delays_seconds=tuple(source.JOB_RETRY_DELAYS_SECONDS),
    )
    definitions = [
        JobDefinition(
            job_id=FUND_PRICE_REFRESH,
            description="Fetch the latest TSP fund prices",
            cron=source.FUND_PRICE_REFRESH_CRON,
            queue="default",
            retry_policy=default_retry,
        ),
        JobDefinition(
            job_id=CONNECTION_SYNC,
            description="Sync balances, holdings and transactions for linked connections",
            cron=source.CONNECTION_SYNC_CRON,
            queue="default",
            retry_policy=RetryPolicy(
                attempts=source.CONNECTION_SYNC_RETRY_ATTEMPTS,
                delays_seconds=tuple(source.CONNECTION_SYNC_RETRY_DELAYS_SECONDS),
            ),
        ),
        JobDefinition(
            job_id=PRICE_REFRESH,
            description="Reprice holdings from market quotes and recompute balances",
            cron=source.PRICE_REFRESH_CRON,
            queue="price-refresh",
            retry_policy=default_retry,
        ),
        JobDefinition(
            job_id=NETWORTH_SNAPSHOT,
            description="Capture one net worth snapshot per eligible user",
            cron=source.NETWORTH_SNAPSHOT_CRON,
            queue="snapshots",
            retry_policy=default_retry,
        ),
    ]
    return {d.job_id: d for d in definitions}


JOB_DEFINITIONS = build_job_definitions()


def _run_fund_price_refresh(
    db: Session, services: dict[str, Any], cancel_event: Optional[threading.Event]
):
    service = services.get("fund_price_service") or FundPriceService()
    try:
        return service.refresh_latest()
    except ProviderError as e:
        # Single fetch, no per-entity loop: any failure is retryable setup
        raise BatchSetupError(FUND_PRICE_REFRESH, str(e)) from e


def _run_connection_sync(
    db: Session, services: dict[str, Any], cancel_event: Optional[threading.Event]
):
    service = services.get("connection_sync_service") or ConnectionSyncService()
    return service.sync_all(db, cancel_event=cancel_event)


def _run_price_refresh(
    db: Session, services: dict[str, Any], cancel_event: Optional[threading.Event]
):
    service = services.get("price_refresh_service") or PriceRefreshService()
    return service.refresh_all(db, config=services.get("config"), cancel_event=cancel_event)


def _run_networth_snapshot(
    db: Session, services: dict[str, Any], cancel_event: Optional[threading.Event]
):
    service = services.get("snapshot_service") or NetWorthSnapshotService()
    return service.run_batch(
        db, snapshot_date=services.get("snapshot_date"), cancel_event=cancel_event
    )


JOB_RUNNERS: dict[str, Callable] = {
    FUND_PRICE_REFRESH: _run_fund_price_refresh,
    CONNECTION_SYNC: _run_connection_sync,
    PRICE_REFRESH: _run_price_refresh,
    NETWORTH_SNAPSHOT: _run_networth_snapshot,
}


def run_job(
    job_id: str,
    session_factory: Optional[Callable[[], Session]] = None,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: Optional[threading.Event] = None,
    **services: Any,
):
    """Run one job with its retry policy.

    Each attempt gets a fresh session. ``BatchSetupError`` is retried
    ``retry_policy.attempts`` times, sleeping ``delay_for(n)`` before retry
    ``n``; the last failure is re-raised. Any other exception propagates
    immediately.

    Args:
        job_id: One of ``JOB_DEFINITIONS``.
        session_factory: Callable returning a Session (defaults to the app's).
        sleep: Delay function, injectable for tests.
        cancel_event: Passed through to jobs that support cancellation.
        **services: Optional service overrides (``snapshot_service``,
            ``price_refresh_service``, ``connection_sync_service``,
            ``fund_price_service``) and job arguments (``config``,
            ``snapshot_date``).

    Returns:
        Whatever the job returns (its result/summary object).

    Raises:
        EntityNotFoundError: If ``job_id`` is unknown.
        BatchSetupError: If every attempt failed during setup.
    """
    definition = JOB_DEFINITIONS.get(job_id)
    if definition is None:
        raise EntityNotFoundError("Job", job_id)

    runner = JOB_RUNNERS[job_id]
    session_factory = session_factory or get_session_local()
    policy = definition.retry_policy
    retries = 0

    while True:
        db = session_factory()
        try:
            logger.info("Running job %s (attempt %d)", job_id, retries + 1)
            return runner(db, services, cancel_event)
        except BatchSetupError:
            db.rollback()
            if retries >= policy.attempts:
                logger.error(
                    "Job %s failed after %d attempts; giving up", job_id, retries + 1
                )
                raise
            retries += 1
            delay = policy.delay_for(retries)
            logger.warning(
                "Job %s setup failed; retry %d/%d in %ds",
                job_id, retries, policy.attempts, delay,
            )
            sleep(delay)
        finally:
            db.close()
