"""Connection sync service - nightly sync of linked institution connections."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from integrations.connection_protocol import BalanceSyncResult, ExternalConnectionClient
from models import ConnectionSource, ConnectionStatus, ExternalConnection, User
from models.utils import utcnow
from services.exceptions import BatchSetupError, ConnectionSyncError, EntityNotFoundError
from services.job_results import EntityOutcome, OutcomeStatus, tally

logger = logging.getLogger(__name__)

JOB_ID = "connection-sync"

CASH = ConnectionSource.CASH.value
INVESTMENT = ConnectionSource.INVESTMENT.value


@dataclass
class ConnectionSyncSummary:
    """Aggregate outcome of syncing a set of connections."""

    cash_success: int = 0
    cash_failed: int = 0
    investment_success: int = 0
    investment_failed: int = 0
    transaction_failures: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    outcomes: list[EntityOutcome] = field(default_factory=list)

    @property
    def total_failed(self) -> int:
        return self.cash_failed + self.investment_failed

    @property
    def success(self) -> bool:
        return self.total_failed == 0 and not self.cancelled

    @property
    def errors(self) -> list[str]:
        return [f"{o.entity_id}: {o.error}" for o in self.outcomes if o.failed]


class ConnectionSyncService:
    """Syncs connected external connections through the aggregation service.

    Investment connections sync holdings, cash connections sync balances;
    both follow up with a transaction sync whose failure is only logged.
    """

    def __init__(self, client: Optional[ExternalConnectionClient] = None):
        """Initialize with optional client for dependency injection.

        Args:
            client: External connection client. If None, a
                   ConnectionServiceClient is created on first use.
        """
        self._client = client

    @property
    def client(self) -> ExternalConnectionClient:
        if self._client is None:
            from integrations.connection_service_client import ConnectionServiceClient

            self._client = ConnectionServiceClient()
        return self._client

    def _sync_transactions(self, connection_id: str) -> bool:
        """Follow-up transaction sync. Never raises; failure is only logged."""
        try:
            txn = self.client.sync_transactions(connection_id)
        except Exception as e:
            logger.warning(
                "Transaction sync raised for %s: %s", connection_id, e, exc_info=True
            )
            return False
        if txn.success:
            logger.debug(
                "Synced transactions for %s: +%d ~%d -%d",
                connection_id, txn.added, txn.modified, txn.removed,
            )
            return True
        logger.warning(
            "Transaction sync failed for %s: %s", connection_id, txn.error_message
        )
        return False

    def _sync_connection(self, connection: ExternalConnection) -> EntityOutcome:
        """Sync one connection and report which bucket it lands in.

        Raises whatever the client raises; the caller isolates it.
        """
        category = INVESTMENT if connection.source == INVESTMENT else CASH

        if category == INVESTMENT:
            primary = self.client.sync_holdings(connection.id)
            if primary.success:
                logger.debug(
                    "Synced investment holdings for %s: %d accounts, %d holdings",
                    connection.id, primary.accounts_updated, primary.holdings_updated,
                )
        else:
            primary = self.client.sync_balances(connection.id)
            if primary.success:
                logger.debug(
                    "Synced connection %s: %d accounts updated",
                    connection.id, primary.accounts_updated,
                )

        if not primary.success:
            logger.warning(
                "%s sync failed for connection %s: %s",
                category.capitalize(), connection.id, primary.error_message,
            )
            return EntityOutcome(
                connection.id, OutcomeStatus.FAILED, category, primary.error_message
            )

        connection.last_synced_at = utcnow()
        outcome = EntityOutcome(connection.id, OutcomeStatus.SUCCESS, category)
        if not self._sync_transactions(connection.id):
            outcome.error = "transaction sync failed"
        return outcome

    def _sync_connections(
        self,
        db: Session,
        connections: list[ExternalConnection],
        cancel_event: Optional[threading.Event] = None,
    ) -> ConnectionSyncSummary:
        started = time.monotonic()
        summary = ConnectionSyncSummary()

        for connection in connections:
            if cancel_event is not None and cancel_event.is_set():
                db.rollback()
                summary.cancelled = True
                summary.elapsed_seconds = time.monotonic() - started
                logger.warning(
                    "Connection sync cancelled after %d of %d connections; nothing saved",
                    len(summary.outcomes), len(connections),
                )
                return summary

            try:
                outcome = self._sync_connection(connection)
            except Exception as e:
                category = INVESTMENT if connection.source == INVESTMENT else CASH
                logger.error(
                    "Exception syncing connection %s: %s", connection.id, e,
                    exc_info=True,
                )
                outcome = EntityOutcome(
                    connection.id, OutcomeStatus.FAILED, category, str(e)
                )
            summary.outcomes.append(outcome)

        cash = tally(summary.outcomes, CASH)
        investment = tally(summary.outcomes, INVESTMENT)
        summary.cash_success = cash[OutcomeStatus.SUCCESS]
        summary.cash_failed = cash[OutcomeStatus.FAILED]
        summary.investment_success = investment[OutcomeStatus.SUCCESS]
        summary.investment_failed = investment[OutcomeStatus.FAILED]
        summary.transaction_failures = sum(
            1 for o in summary.outcomes
            if o.status == OutcomeStatus.SUCCESS and o.error
        )

        # Only last_synced_at stamps are ours to write
        db.commit()
        summary.elapsed_seconds = time.monotonic() - started
        return summary

    @staticmethod
    def _connected(db: Session, user_id: Optional[str] = None) -> list[ExternalConnection]:
        query = db.query(ExternalConnection).filter(
            ExternalConnection.status == ConnectionStatus.CONNECTED.value
        )
        if user_id is not None:
            query = query.filter(ExternalConnection.user_id == user_id)
        return query.order_by(ExternalConnection.id).all()

    def sync_all(
        self,
        db: Session,
        cancel_event: Optional[threading.Event] = None,
    ) -> ConnectionSyncSummary:
        """Sync every connected connection across all users.

        No per-connection failure escapes; the summary carries the counts.

        Raises:
            BatchSetupError: If the connections cannot be loaded.
        """
        logger.info("Starting connection sync for all connections")
        try:
            connections = self._connected(db)
        except Exception as e:
            logger.error("Connection sync setup failed", exc_info=True)
            raise BatchSetupError(JOB_ID, str(e)) from e

        logger.info("Found %d connected connections to sync", len(connections))
        summary = self._sync_connections(db, connections, cancel_event)
        logger.info(
            "Connection sync completed in %.2fs. Cash: %d/%d, Investments: %d/%d",
            summary.elapsed_seconds,
            summary.cash_success, summary.cash_failed,
            summary.investment_success, summary.investment_failed,
        )
        return summary

    def sync_one(self, db: Session, connection_id: str) -> BalanceSyncResult:
        """Sync balances for a single connection (manual trigger).

        Raises:
            EntityNotFoundError: If the connection does not exist.
            ConnectionSyncError: If the aggregation service reports failure.
        """
        connection = db.get(ExternalConnection, connection_id)
        if connection is None:
            raise EntityNotFoundError("Connection", connection_id)

        logger.info("Syncing connection %s", connection_id)
        result = self.client.sync_balances(connection_id)
        if not result.success:
            logger.error(
                "Failed to sync connection %s: %s", connection_id, result.error_message
            )
            raise ConnectionSyncError(connection_id, result.error_message)

        connection.last_synced_at = utcnow()
        db.commit()
        logger.info(
            "Synced connection %s: %d accounts updated",
            connection_id, result.accounts_updated,
        )
        return result

    def sync_for_user(self, db: Session, user_id: str) -> ConnectionSyncSummary:
        """Sync every connected connection one user owns.

        Partial failure is logged as a warning, never raised.

        Raises:
            EntityNotFoundError: If the user does not exist.
        """
        if db.get(User, user_id) is None:
            raise EntityNotFoundError("User", user_id)

        logger.info("Syncing connections for user %s", user_id)
        summary = self._sync_connections(db, self._connected(db, user_id))
        if summary.success:
            logger.info(
                "Synced all connections for user %s (%d)",
                user_id, len(summary.outcomes),
            )
        else:
            logger.warning(
                "Some connections failed to sync for user %s: %s",
                user_id, "; ".join(summary.errors),
            )
        return summary
