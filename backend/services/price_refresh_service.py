"""Price refresh service - reprices holdings from market quotes."""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from config import RefreshConfig
from models import Account, User
from models.account import ACTIVE_LIFECYCLE_STATE
from models.utils import utcnow
from services.exceptions import BatchSetupError, EntityNotFoundError
from services.job_results import EntityOutcome, OutcomeStatus, tally
from services.market_data_service import MarketDataService
from utils.ticker import is_excluded

logger = logging.getLogger(__name__)

JOB_ID = "price-refresh"


@dataclass
class PriceRefreshResult:
    """Summary of a price refresh run (batch or single account)."""

    accounts_considered: int = 0
    symbols_requested: int = 0
    prices_fetched: int = 0
    holdings_updated: int = 0
    holdings_skipped: int = 0
    accounts_updated: int = 0
    errors: int = 0
    warnings: int = 0
    missing_symbols: list[str] = field(default_factory=list)
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    outcomes: list[EntityOutcome] = field(default_factory=list)


@dataclass
class UserRefreshResult:
    """Summary of refreshing every account for one user."""

    user_id: str
    accounts_refreshed: int = 0
    holdings_updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def compute_account_balance(account: Account) -> Decimal:
    """Sum quantity x current_price over an account's holdings."""
    return sum(
        (
            Decimal(h.quantity or 0) * Decimal(h.current_price or 0)
            for h in account.holdings
        ),
        Decimal("0"),
    )


def collect_symbols(accounts: list[Account], config: RefreshConfig) -> list[str]:
    """Unique uppercase symbols across the accounts' holdings, minus exclusions."""
    symbols: dict[str, None] = {}
    for account in accounts:
        for holding in account.holdings:
            if is_excluded(holding.symbol, config):
                continue
            symbols[holding.symbol.strip().upper()] = None
    return list(symbols)


class PriceRefreshService:
    """Refreshes holding prices and the balances derived from them.

    Symbols on the exclusion lists (including TSP fund identifiers, which
    are priced elsewhere) are never requested and never repriced.
    """

    def __init__(self, market_data_service: Optional[MarketDataService] = None):
        """Initialize with optional market data service for dependency injection.

        Args:
            market_data_service: Service used to fetch quotes. If None, a
                                default MarketDataService is created.
        """
        self._market_data = market_data_service

    @property
    def market_data(self) -> MarketDataService:
        if self._market_data is None:
            self._market_data = MarketDataService()
        return self._market_data

    @staticmethod
    def _eligible_accounts_query(db: Session):
        return (
            db.query(Account)
            .join(User, Account.user_id == User.id)
            .options(selectinload(Account.holdings))
            .filter(
                Account.refresh_enabled.is_(True),
                Account.lifecycle_state == ACTIVE_LIFECYCLE_STATE,
                User.is_test_account.is_(False),
                Account.holdings.any(),
            )
            .order_by(Account.id)
        )

    def _apply_prices(
        self,
        account: Account,
        prices: dict[str, Decimal],
        config: RefreshConfig,
        now: datetime,
        result: PriceRefreshResult,
    ) -> bool:
        """Reprice one account's holdings in place.

        ``current_balance`` is recomputed from the holdings whether or not any
        price changed. Returns True if at least one holding was repriced.
        """
        touched = False
        for holding in account.holdings:
            if is_excluded(holding.symbol, config):
                result.holdings_skipped += 1
                continue

            symbol = holding.symbol.strip().upper()
            price = prices.get(symbol)
            if price is None:
                logger.warning(
                    "No price found for symbol %s (account %s)", symbol, account.id
                )
                result.errors += 1
                if symbol not in result.missing_symbols:
                    result.missing_symbols.append(symbol)
                continue

            holding.current_price = price
            holding.last_price_update = now
            holding.updated_at = now
            result.holdings_updated += 1
            touched = True

        account.current_balance = compute_account_balance(account)
        account.updated_at = now
        result.accounts_updated += 1
        return touched

    def refresh_all(
        self,
        db: Session,
        config: Optional[RefreshConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PriceRefreshResult:
        """Refresh prices for every eligible holding across all users.

        Eligible accounts have refresh enabled, an Active lifecycle state,
        a non-test owner and at least one holding. Quotes are fetched in
        batches of ``config.quote_batch_size``; everything is committed once.

        Args:
            db: Database session
            config: Exclusions and batch size (defaults to current settings)
            cancel_event: Checked before each account; when set, the run
                          rolls back and returns with ``cancelled=True``.

        Returns:
            PriceRefreshResult with counts

        Raises:
            BatchSetupError: If loading accounts or fetching quotes fails.
        """
        started = time.monotonic()
        config = config or RefreshConfig.from_settings()
        result = PriceRefreshResult()
        logger.info("Starting price refresh")

        try:
            accounts = self._eligible_accounts_query(db).all()
            result.accounts_considered = len(accounts)
            logger.info("Found %d eligible accounts with holdings", len(accounts))

            if not accounts:
                logger.info("No eligible accounts to process; nothing to do")
                result.warnings += 1
                result.elapsed_seconds = time.monotonic() - started
                return result

            symbols = collect_symbols(accounts, config)
            result.symbols_requested = len(symbols)
            prices = self.market_data.get_quotes(
                symbols, batch_size=config.quote_batch_size
            )
            result.prices_fetched = len(prices)
        except Exception as e:
            logger.error(
                "Price refresh setup failed after %.2fs",
                time.monotonic() - started, exc_info=True,
            )
            raise BatchSetupError(JOB_ID, str(e)) from e

        now = utcnow()
        for account in accounts:
            if cancel_event is not None and cancel_event.is_set():
                db.rollback()
                result.cancelled = True
                result.elapsed_seconds = time.monotonic() - started
                logger.warning(
                    "Price refresh cancelled after %d of %d accounts; nothing saved",
                    len(result.outcomes), len(accounts),
                )
                return result

            try:
                touched = self._apply_prices(account, prices, config, now, result)
                status = OutcomeStatus.SUCCESS if touched else OutcomeStatus.SKIPPED
                result.outcomes.append(EntityOutcome(account.id, status))
            except Exception as e:
                logger.error(
                    "Failed to refresh prices for account %s: %s", account.id, e,
                    exc_info=True,
                )
                result.outcomes.append(
                    EntityOutcome(account.id, OutcomeStatus.FAILED, error=str(e))
                )

        db.commit()

        result.errors += tally(result.outcomes)[OutcomeStatus.FAILED]
        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Price refresh completed. Updated: %d, Errors: %d, Duration: %.2fs",
            result.holdings_updated, result.errors, result.elapsed_seconds,
        )
        return result

    def refresh_account(
        self,
        db: Session,
        account_id: str,
        config: Optional[RefreshConfig] = None,
    ) -> PriceRefreshResult:
        """Refresh prices for a single account (manual trigger) and commit.

        Stamps ``last_external_sync`` once quotes are fetched. Quote
        provider errors propagate to the caller.

        Raises:
            EntityNotFoundError: If the account does not exist.
        """
        started = time.monotonic()
        config = config or RefreshConfig.from_settings()
        result = PriceRefreshResult()

        account = (
            db.query(Account)
            .options(selectinload(Account.holdings))
            .filter(Account.id == account_id)
            .first()
        )
        if account is None:
            raise EntityNotFoundError("Account", account_id)

        result.accounts_considered = 1
        logger.info("Refreshing prices for account %s", account_id)

        symbols = collect_symbols([account], config)
        result.symbols_requested = len(symbols)
        if not symbols:
            logger.info("No symbols to refresh for account %s", account_id)
            result.holdings_skipped = len(account.holdings)
            return result

        prices = self.market_data.get_quotes(symbols, batch_size=config.quote_batch_size)
        result.prices_fetched = len(prices)

        now = utcnow()
        self._apply_prices(account, prices, config, now, result)
        account.last_external_sync = now
        account.updated_at = now
        db.commit()

        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Refreshed %d holdings for account %s (%d missing)",
            result.holdings_updated, account_id, len(result.missing_symbols),
        )
        return result

    def refresh_user_accounts(
        self,
        db: Session,
        user_id: str,
        config: Optional[RefreshConfig] = None,
    ) -> UserRefreshResult:
        """Refresh every refresh-enabled, Active account a user owns.

        Per-account failures are collected into ``errors``; this method
        only raises when the user does not exist.
        """
        if db.get(User, user_id) is None:
            raise EntityNotFoundError("User", user_id)

        config = config or RefreshConfig.from_settings()
        summary = UserRefreshResult(user_id=user_id)
        account_ids = [
            row.id
            for row in db.query(Account.id)
            .filter(
                Account.user_id == user_id,
                Account.refresh_enabled.is_(True),
                Account.lifecycle_state == ACTIVE_LIFECYCLE_STATE,
            )
            .order_by(Account.id)
            .all()
        ]

        for account_id in account_ids:
            try:
                account_result = self.refresh_account(db, account_id, config)
            except Exception as e:
                db.rollback()
                logger.warning(
                    "Price refresh failed for account %s (user %s): %s",
                    account_id, user_id, e,
                )
                summary.errors.append(f"Account {account_id}: {e}")
                continue
            summary.accounts_refreshed += 1
            summary.holdings_updated += account_result.holdings_updated

        logger.info(
            "Refreshed %d/%d accounts for user %s",
            summary.accounts_refreshed, len(account_ids), user_id,
        )
        return summary
