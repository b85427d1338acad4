"""Pydantic request/response schemas."""

from schemas.refresh import (
    ConnectionSyncResponse,
    ConnectionSyncSummaryResponse,
    JobDefinitionResponse,
    JobTriggerResponse,
    NetWorthSnapshotResponse,
    PriceRefreshResponse,
    RetryPolicyResponse,
    UserPriceRefreshResponse,
)

__all__ = [
    "ConnectionSyncResponse",
    "ConnectionSyncSummaryResponse",
    "JobDefinitionResponse",
    "JobTriggerResponse",
    "NetWorthSnapshotResponse",
    "PriceRefreshResponse",
    "RetryPolicyResponse",
    "UserPriceRefreshResponse",
]
