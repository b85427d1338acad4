"""Pydantic schemas for manual refresh and job endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PriceRefreshResponse(BaseModel):
    """Result of repricing one account."""

    account_id: str
    symbols_requested: int
    holdings_updated: int
    holdings_skipped: int
    missing_symbols: list[str] = Field(default_factory=list)


class UserPriceRefreshResponse(BaseModel):
    """Result of repricing every account a user owns."""

    user_id: str
    accounts_refreshed: int
    holdings_updated: int
    success: bool
    errors: list[str] = Field(default_factory=list)


class NetWorthSnapshotResponse(BaseModel):
    """A stored net worth snapshot."""

    id: str
    user_id: str
    snapshot_date: date
    cash_total: Decimal
    investments_total: Decimal
    retirement_total: Decimal
    real_estate_equity: Decimal
    liabilities_total: Decimal
    total_net_worth: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConnectionSyncResponse(BaseModel):
    """Result of a single-connection balance sync."""

    connection_id: str
    success: bool
    accounts_updated: int


class ConnectionSyncSummaryResponse(BaseModel):
    """Aggregate result of syncing a user's connections."""

    user_id: str
    success: bool
    cash_success: int
    cash_failed: int
    investment_success: int
    investment_failed: int
    errors: list[str] = Field(default_factory=list)


class RetryPolicyResponse(BaseModel):
    attempts: int
    delays_seconds: list[int]


class JobDefinitionResponse(BaseModel):
    """A scheduled job and how it is retried."""

    job_id: str
    description: str
    cron: str
    queue: str
    retry_policy: RetryPolicyResponse


class JobTriggerResponse(BaseModel):
    job_id: str
    status: str = "queued"
