"""Manual refresh and job trigger API endpoints."""

import logging
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from api.helpers import raise_http_error
from database import get_db
from jobs.registry import JOB_DEFINITIONS, run_job
from schemas import (
    ConnectionSyncResponse,
    ConnectionSyncSummaryResponse,
    JobDefinitionResponse,
    JobTriggerResponse,
    NetWorthSnapshotResponse,
    PriceRefreshResponse,
    RetryPolicyResponse,
    UserPriceRefreshResponse,
)
from services.connection_sync_service import ConnectionSyncService
from services.exceptions import EntityNotFoundError
from services.net_worth_snapshot_service import NetWorthSnapshotService
from services.price_refresh_service import PriceRefreshService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/refresh", tags=["refresh"])


# Dependencies, overridden in tests via app.dependency_overrides
def get_price_refresh_service() -> PriceRefreshService:
    return PriceRefreshService()


def get_snapshot_service() -> NetWorthSnapshotService:
    return NetWorthSnapshotService()


def get_connection_sync_service() -> ConnectionSyncService:
    return ConnectionSyncService()


def get_job_runner() -> Callable[[str], object]:
    """Callable that runs a job by id in the background."""
    return run_job


def _run_in_background(runner: Callable[[str], object], job_id: str) -> None:
    try:
        runner(job_id)
    except Exception:
        logger.error("Background job %s failed", job_id, exc_info=True)


@router.post("/accounts/{account_id}", response_model=PriceRefreshResponse)
def refresh_account(
    account_id: str,
    db: Session = Depends(get_db),
    service: PriceRefreshService = Depends(get_price_refresh_service),
):
    """Reprice one account's holdings now.

    Raises:
        HTTPException: 404 unknown account, 502 quote provider failure.
    """
    try:
        result = service.refresh_account(db, account_id)
    except Exception as e:
        raise_http_error(e, "price refresh")

    return PriceRefreshResponse(
        account_id=account_id,
        symbols_requested=result.symbols_requested,
        holdings_updated=result.holdings_updated,
        holdings_skipped=result.holdings_skipped,
        missing_symbols=result.missing_symbols,
    )


@router.post("/users/{user_id}/accounts", response_model=UserPriceRefreshResponse)
def refresh_user_accounts(
    user_id: str,
    db: Session = Depends(get_db),
    service: PriceRefreshService = Depends(get_price_refresh_service),
):
    """Reprice every refresh-enabled account a user owns.

    Per-account failures are returned in ``errors`` with a 200.
    """
    try:
        result = service.refresh_user_accounts(db, user_id)
    except Exception as e:
        raise_http_error(e, "price refresh")

    return UserPriceRefreshResponse(
        user_id=user_id,
        accounts_refreshed=result.accounts_refreshed,
        holdings_updated=result.holdings_updated,
        success=result.success,
        errors=result.errors,
    )


@router.post("/users/{user_id}/snapshot", response_model=NetWorthSnapshotResponse)
def trigger_snapshot(
    user_id: str,
    db: Session = Depends(get_db),
    service: NetWorthSnapshotService = Depends(get_snapshot_service),
):
    """Create or refresh today's net worth snapshot for a user."""
    try:
        return service.trigger_for_user(db, user_id)
    except Exception as e:
        raise_http_error(e, "net worth snapshot")


@router.post("/connections/{connection_id}", response_model=ConnectionSyncResponse)
def sync_connection(
    connection_id: str,
    db: Session = Depends(get_db),
    service: ConnectionSyncService = Depends(get_connection_sync_service),
):
    """Sync balances for one connection.

    Raises:
        HTTPException: 404 unknown connection, 502 sync reported failure.
    """
    try:
        result = service.sync_one(db, connection_id)
    except Exception as e:
        raise_http_error(e, "connection sync")

    return ConnectionSyncResponse(
        connection_id=connection_id,
        success=result.success,
        accounts_updated=result.accounts_updated,
    )


@router.post("/users/{user_id}/connections", response_model=ConnectionSyncSummaryResponse)
def sync_user_connections(
    user_id: str,
    db: Session = Depends(get_db),
    service: ConnectionSyncService = Depends(get_connection_sync_service),
):
    """Sync every connected connection a user owns; partial failure is a 200."""
    try:
        summary = service.sync_for_user(db, user_id)
    except Exception as e:
        raise_http_error(e, "connection sync")

    return ConnectionSyncSummaryResponse(
        user_id=user_id,
        success=summary.success,
        cash_success=summary.cash_success,
        cash_failed=summary.cash_failed,
        investment_success=summary.investment_success,
        investment_failed=summary.investment_failed,
        errors=summary.errors,
    )


@router.get("/jobs", response_model=list[JobDefinitionResponse])
def list_jobs():
    """List scheduled jobs with their cron expressions and retry policies."""
    return [
        JobDefinitionResponse(
            job_id=job.job_id,
            description=job.description,
            cron=job.cron,
            queue=job.queue,
            retry_policy=RetryPolicyResponse(
                attempts=job.retry_policy.attempts,
                delays_seconds=list(job.retry_policy.delays_seconds),
            ),
        )
        for job in JOB_DEFINITIONS.values()
    ]


@router.post("/jobs/{job_id}/trigger", response_model=JobTriggerResponse, status_code=202)
def trigger_job(
    job_id: str,
    background_tasks: BackgroundTasks,
    runner: Callable[[str], object] = Depends(get_job_runner),
):
    """Queue a job to run after the response is sent."""
    if job_id not in JOB_DEFINITIONS:
        raise_http_error(EntityNotFoundError("Job", job_id), "job trigger")

    background_tasks.add_task(_run_in_background, runner, job_id)
    logger.info("Queued job %s", job_id)
    return JobTriggerResponse(job_id=job_id)
