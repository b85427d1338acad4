"""External connection client protocol definitions.

The aggregation service owns the per-institution wire protocols and writes
balances, holdings and transactions itself. This side only asks it to sync
one connection at a time and reads back a result.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class BalanceSyncResult:
    """Outcome of refreshing cash balances for one connection."""

    success: bool
    accounts_updated: int = 0
    error_message: str | None = None


@dataclass
class HoldingsSyncResult:
    """Outcome of refreshing investment holdings for one connection."""

    success: bool
    accounts_updated: int = 0
    holdings_updated: int = 0
    error_message: str | None = None


@dataclass
class TransactionsSyncResult:
    """Outcome of pulling new transactions for one connection."""

    success: bool
    added: int = 0
    modified: int = 0
    removed: int = 0
    error_message: str | None = None


class ExternalConnectionClient(Protocol):
    """Protocol for the external connection aggregation service.

    Implementations report provider-side failures as ``success=False``
    results and raise only for transport problems.
    """

    def sync_balances(self, connection_id: str) -> BalanceSyncResult:
        ...

    def sync_holdings(self, connection_id: str) -> HoldingsSyncResult:
        ...

    def sync_transactions(self, connection_id: str) -> TransactionsSyncResult:
        ...
