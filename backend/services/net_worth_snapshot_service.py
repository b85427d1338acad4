"""Net worth snapshot service - daily per-user net worth aggregation."""

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import (
    Account,
    CashAccount,
    FundPriceSnapshot,
    Liability,
    NetWorthSnapshot,
    Property,
    RetirementPosition,
    User,
)
from models.account import CASH_ACCOUNT_TYPES, INVESTMENT_ACCOUNT_TYPES
from models.utils import utcnow
from services.exceptions import BatchSetupError, EntityNotFoundError
from services.job_results import EntityOutcome, OutcomeStatus, tally

logger = logging.getLogger(__name__)

JOB_ID = "networth-snapshot"

# Keep IN (...) clauses under SQLite's bound-parameter limit
_USER_ID_CHUNK = 500

ZERO = Decimal("0")


@dataclass
class UserFinancials:
    """Everything needed to compute one user's snapshot, loaded up front."""

    user_id: str
    accounts: list[Account] = field(default_factory=list)
    cash_accounts: list[CashAccount] = field(default_factory=list)
    retirement_positions: list[RetirementPosition] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    liabilities: list[Liability] = field(default_factory=list)


@dataclass
class NetWorthBreakdown:
    """Category totals for one user.

    ``liabilities_total`` already includes mortgages. Property counts at
    gross value in ``total_assets``; ``real_estate_equity`` is display-only.
    """

    cash_total: Decimal = ZERO
    investments_total: Decimal = ZERO
    retirement_total: Decimal = ZERO
    real_estate_value: Decimal = ZERO
    mortgage_total: Decimal = ZERO
    liabilities_total: Decimal = ZERO

    @property
    def total_assets(self) -> Decimal:
        return (
            self.cash_total
            + self.investments_total
            + self.retirement_total
            + self.real_estate_value
        )

    @property
    def net_worth(self) -> Decimal:
        return self.total_assets - self.liabilities_total

    @property
    def real_estate_equity(self) -> Decimal:
        return self.real_estate_value - self.mortgage_total


@dataclass
class SnapshotBatchResult:
    """Summary of a snapshot batch run."""

    snapshot_date: date
    eligible_users: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    warnings: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    outcomes: list[EntityOutcome] = field(default_factory=list)


def _sum(values) -> Decimal:
    return sum((Decimal(v) for v in values if v is not None), ZERO)


def _chunks(ids: list[str]) -> list[list[str]]:
    return [ids[i:i + _USER_ID_CHUNK] for i in range(0, len(ids), _USER_ID_CHUNK)]


class NetWorthSnapshotService:
    """Creates one NetWorthSnapshot per eligible user per day.

    The batch path is idempotent: users that already have a row for the
    date are skipped. The manual path upserts today's row.
    """

    @staticmethod
    def calculate_breakdown(
        financials: UserFinancials,
        price_snapshot: Optional[FundPriceSnapshot],
    ) -> NetWorthBreakdown:
        """Aggregate one user's loaded data into category totals.

        Investments use each account's maintained ``current_balance`` so the
        figure matches what the dashboard shows. Retirement positions are
        priced from ``price_snapshot``; a missing snapshot or fund price
        contributes zero.
        """
        investments_total = _sum(
            a.current_balance
            for a in financials.accounts
            if a.account_type in INVESTMENT_ACCOUNT_TYPES
        )

        retirement_total = ZERO
        if price_snapshot is not None:
            for position in financials.retirement_positions:
                units = Decimal(position.units or 0)
                if units <= 0:
                    continue
                price = price_snapshot.price_for(position.fund_code)
                if price is None:
                    logger.debug(
                        "No cached price for fund %s (user %s)",
                        position.fund_code, financials.user_id,
                    )
                    continue
                retirement_total += units * price

        mortgage_total = _sum(p.mortgage_balance for p in financials.properties)

        return NetWorthBreakdown(
            cash_total=_sum(c.balance for c in financials.cash_accounts),
            investments_total=investments_total,
            retirement_total=retirement_total,
            real_estate_value=_sum(p.estimated_value for p in financials.properties),
            mortgage_total=mortgage_total,
            liabilities_total=_sum(li.current_balance for li in financials.liabilities)
            + mortgage_total,
        )

    @staticmethod
    def build_snapshot(
        user_id: str, snapshot_date: date, breakdown: NetWorthBreakdown
    ) -> NetWorthSnapshot:
        """Create an unsaved NetWorthSnapshot from a breakdown."""
        snapshot = NetWorthSnapshot(user_id=user_id, snapshot_date=snapshot_date)
        NetWorthSnapshotService._apply_breakdown(snapshot, breakdown)
        return snapshot

    @staticmethod
    def _apply_breakdown(snapshot: NetWorthSnapshot, breakdown: NetWorthBreakdown) -> None:
        snapshot.cash_total = breakdown.cash_total
        snapshot.investments_total = breakdown.investments_total
        snapshot.retirement_total = breakdown.retirement_total
        snapshot.real_estate_equity = breakdown.real_estate_equity
        snapshot.liabilities_total = breakdown.liabilities_total
        snapshot.total_net_worth = breakdown.net_worth

    @staticmethod
    def get_latest_price_snapshot(db: Session) -> Optional[FundPriceSnapshot]:
        """Return the most recent cached fund price set, if any."""
        return (
            db.query(FundPriceSnapshot)
            .order_by(
                FundPriceSnapshot.price_date.desc(),
                FundPriceSnapshot.created_at.desc(),
            )
            .first()
        )

    @staticmethod
    def load_financials(db: Session, user_ids: list[str]) -> dict[str, UserFinancials]:
        """Load snapshot inputs for many users with one query per entity type.

        Returns a dict keyed by user id; every requested id is present even
        when the user has no rows.
        """
        result = {uid: UserFinancials(user_id=uid) for uid in user_ids}
        if not user_ids:
            return result

        grouped: dict[str, dict[str, list]] = {
            "accounts": defaultdict(list),
            "cash_accounts": defaultdict(list),
            "retirement_positions": defaultdict(list),
            "properties": defaultdict(list),
            "liabilities": defaultdict(list),
        }

        for chunk in _chunks(user_ids):
            accounts = (
                db.query(Account)
                .filter(
                    Account.user_id.in_(chunk),
                    Account.is_active.is_(True),
                    Account.account_type.notin_(CASH_ACCOUNT_TYPES),
                )
                .all()
            )
            for row in accounts:
                grouped["accounts"][row.user_id].append(row)

            for attr, model in (
                ("cash_accounts", CashAccount),
                ("retirement_positions", RetirementPosition),
                ("properties", Property),
                ("liabilities", Liability),
            ):
                for row in db.query(model).filter(model.user_id.in_(chunk)).all():
                    grouped[attr][row.user_id].append(row)

        for attr, by_user in grouped.items():
            for uid, rows in by_user.items():
                setattr(result[uid], attr, rows)

        return result

    def compute_snapshot(
        self, db: Session, user_id: str, snapshot_date: Optional[date] = None
    ) -> NetWorthSnapshot:
        """Compute (but do not save) a snapshot for one user.

        Always returns a snapshot; a user with no data gets zero totals.
        """
        snapshot_date = snapshot_date or utcnow().date()
        financials = self.load_financials(db, [user_id])[user_id]
        breakdown = self.calculate_breakdown(
            financials, self.get_latest_price_snapshot(db)
        )
        return self.build_snapshot(user_id, snapshot_date, breakdown)

    def run_batch(
        self,
        db: Session,
        snapshot_date: Optional[date] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SnapshotBatchResult:
        """Capture snapshots for every eligible user that lacks one for the date.

        Eligible users are active and not test accounts. All inserts are
        committed together at the end. A failure for one user is logged and
        recorded; it never stops the batch.

        Args:
            db: Database session
            snapshot_date: Date to snapshot (defaults to today, UTC)
            cancel_event: Checked before each user; when set, the run rolls
                          back and returns with ``cancelled=True``.

        Returns:
            SnapshotBatchResult with counts and per-user outcomes

        Raises:
            BatchSetupError: If loading users or their data fails.
        """
        started = time.monotonic()
        snapshot_date = snapshot_date or utcnow().date()
        result = SnapshotBatchResult(snapshot_date=snapshot_date)
        logger.info("Starting net worth snapshot batch for %s", snapshot_date)

        try:
            eligible_ids = [
                row.id
                for row in db.query(User.id)
                .filter(User.is_active.is_(True), User.is_test_account.is_(False))
                .order_by(User.id)
                .all()
            ]
            result.eligible_users = len(eligible_ids)

            if not eligible_ids:
                logger.info("No eligible users for net worth snapshot; nothing to do")
                result.elapsed_seconds = time.monotonic() - started
                return result

            already_done = {
                row.user_id
                for row in db.query(NetWorthSnapshot.user_id)
                .filter(NetWorthSnapshot.snapshot_date == snapshot_date)
                .all()
            }
            pending_ids = [uid for uid in eligible_ids if uid not in already_done]
            financials_by_user = self.load_financials(db, pending_ids)
            price_snapshot = self.get_latest_price_snapshot(db)
        except Exception as e:
            logger.error(
                "Net worth snapshot setup failed after %.2fs",
                time.monotonic() - started, exc_info=True,
            )
            raise BatchSetupError(JOB_ID, str(e)) from e

        if price_snapshot is None and any(
            f.retirement_positions for f in financials_by_user.values()
        ):
            logger.warning(
                "No fund price snapshot cached; retirement totals will be 0 for %s",
                snapshot_date,
            )
            result.warnings += 1

        staged: list[NetWorthSnapshot] = []
        for user_id in eligible_ids:
            if user_id in already_done:
                result.outcomes.append(EntityOutcome(user_id, OutcomeStatus.SKIPPED))
                continue

            if cancel_event is not None and cancel_event.is_set():
                db.rollback()
                result.cancelled = True
                result.elapsed_seconds = time.monotonic() - started
                logger.warning(
                    "Net worth snapshot batch cancelled after %d of %d users; nothing saved",
                    len(result.outcomes), len(eligible_ids),
                )
                return result

            try:
                breakdown = self.calculate_breakdown(
                    financials_by_user[user_id], price_snapshot
                )
                staged.append(self.build_snapshot(user_id, snapshot_date, breakdown))
                result.outcomes.append(EntityOutcome(user_id, OutcomeStatus.SUCCESS))
            except Exception as e:
                logger.warning(
                    "Failed to capture snapshot for user %s: %s", user_id, e,
                    exc_info=True,
                )
                result.outcomes.append(
                    EntityOutcome(user_id, OutcomeStatus.FAILED, error=str(e))
                )

        db.add_all(staged)
        db.commit()

        counts = tally(result.outcomes)
        result.created = counts[OutcomeStatus.SUCCESS]
        result.skipped = counts[OutcomeStatus.SKIPPED]
        result.errors = counts[OutcomeStatus.FAILED]
        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Net worth snapshot batch completed. Created: %d, Skipped: %d, Errors: %d, Duration: %.2fs",
            result.created, result.skipped, result.errors, result.elapsed_seconds,
        )
        return result

    def trigger_for_user(self, db: Session, user_id: str) -> NetWorthSnapshot:
        """Create or refresh today's snapshot for one user and commit.

        Raises:
            EntityNotFoundError: If the user does not exist.
        """
        if db.get(User, user_id) is None:
            raise EntityNotFoundError("User", user_id)

        today = utcnow().date()
        financials = self.load_financials(db, [user_id])[user_id]
        breakdown = self.calculate_breakdown(
            financials, self.get_latest_price_snapshot(db)
        )

        snapshot = (
            db.query(NetWorthSnapshot)
            .filter_by(user_id=user_id, snapshot_date=today)
            .first()
        )
        if snapshot is not None:
            self._apply_breakdown(snapshot, breakdown)
            snapshot.updated_at = utcnow()
            logger.info("Updated snapshot for user %s on %s", user_id, today)
        else:
            snapshot = self.build_snapshot(user_id, today, breakdown)
            db.add(snapshot)
            logger.info("Created snapshot for user %s on %s", user_id, today)

        db.commit()
        db.refresh(snapshot)
        logger.info(
            "Snapshot for user %s: net worth %s", user_id, snapshot.total_net_worth
        )
        return snapshot
