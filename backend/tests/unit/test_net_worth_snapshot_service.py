"""Unit tests for NetWorthSnapshotService."""

import random
import threading
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from models import Account, CashAccount, Liability, NetWorthSnapshot, Property, RetirementPosition
from models.account import AccountType, INVESTMENT_ACCOUNT_TYPES
from models.fund_price_snapshot import FundPriceSnapshot
from services.exceptions import BatchSetupError, EntityNotFoundError
from services.job_results import OutcomeStatus
from services.net_worth_snapshot_service import (
    NetWorthSnapshotService,
    UserFinancials,
)
from tests.fixtures import (
    create_account,
    create_cash_account,
    create_fund_price_snapshot,
    create_liability,
    create_position,
    create_property,
    create_user,
)
from utils.fund_codes import FundCode

SNAPSHOT_DATE = date(2024, 1, 12)


@pytest.fixture
def service():
    return NetWorthSnapshotService()


def _rows(db, snapshot_date=SNAPSHOT_DATE):
    return db.query(NetWorthSnapshot).filter_by(snapshot_date=snapshot_date).all()


class TestCalculateBreakdown:
    def test_household_with_home_and_loan(self, db, service, user):
        """Cash, brokerage, mortgaged home and a loan; no retirement positions."""
        create_cash_account(db, user, "15000")
        create_account(db, user, AccountType.BROKERAGE.value, current_balance="50000")
        create_property(db, user, "300000", mortgage_balance="200000")
        create_liability(db, user, "5000")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, None)

        assert breakdown.cash_total == Decimal("15000")
        assert breakdown.investments_total == Decimal("50000")
        assert breakdown.retirement_total == Decimal("0")
        assert breakdown.real_estate_equity == Decimal("100000")
        assert breakdown.total_assets == Decimal("365000")
        assert breakdown.liabilities_total == Decimal("205000")
        assert breakdown.net_worth == Decimal("160000")

    def test_investments_use_maintained_balance_not_holdings(self, db, service, user):
        create_account(
            db, user, AccountType.RETIREMENT_IRA.value,
            current_balance="1000", holdings=[("VTI", "100", "250")],
        )
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, None)

        assert breakdown.investments_total == Decimal("1000")

    def test_only_investment_types_count(self, db, service, user):
        for account_type in AccountType:
            create_account(db, user, account_type.value, current_balance="100")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, None)

        assert breakdown.investments_total == Decimal(100 * len(INVESTMENT_ACCOUNT_TYPES))

    def test_inactive_accounts_ignored(self, db, service, user):
        create_account(db, user, current_balance="500", is_active=False)
        create_account(db, user, current_balance="700")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        assert service.calculate_breakdown(financials, None).investments_total == Decimal("700")

    def test_legacy_cash_account_types_not_loaded(self, db, service, user):
        create_account(db, user, AccountType.CHECKING.value, current_balance="900")
        create_account(db, user, AccountType.SAVINGS.value, current_balance="900")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        assert financials.accounts == []

    def test_retirement_priced_from_cached_snapshot(self, db, service, user, fund_price_snapshot):
        create_position(db, user, "C", "10")
        create_position(db, user, "L2050", "100")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, fund_price_snapshot)

        assert breakdown.retirement_total == Decimal("10") * Decimal("80.10") + Decimal("100") * Decimal("33.20")

    def test_l_income_spellings_resolve_to_same_price(self, db, service, user, fund_price_snapshot):
        assert fund_price_snapshot.price_for("L-INCOME") == fund_price_snapshot.price_for("LINCOME")

        create_position(db, user, "L-INCOME", "10")
        create_position(db, user, "LINCOME", "10")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, fund_price_snapshot)

        assert breakdown.retirement_total == Decimal("20") * Decimal("25.10")

    def test_zero_units_and_unpriced_funds_contribute_nothing(
        self, db, service, user, fund_price_snapshot
    ):
        create_position(db, user, "G", "0")
        create_position(db, user, "S", "50")  # no S price cached
        create_position(db, user, "G FUND", "2")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, fund_price_snapshot)

        assert breakdown.retirement_total == Decimal("2") * Decimal("18.25")

    def test_no_price_snapshot_means_zero_retirement(self, db, service, user):
        create_position(db, user, "C", "10")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        assert service.calculate_breakdown(financials, None).retirement_total == Decimal("0")

    def test_property_without_mortgage(self, db, service, user):
        create_property(db, user, "250000")
        db.commit()

        financials = service.load_financials(db, [user.id])[user.id]
        breakdown = service.calculate_breakdown(financials, None)

        assert breakdown.real_estate_equity == Decimal("250000")
        assert breakdown.liabilities_total == Decimal("0")
        assert breakdown.net_worth == Decimal("250000")


def _random_financials(rng: random.Random) -> UserFinancials:
    def money() -> Decimal:
        return Decimal(rng.randint(0, 50_000_000)) / 100

    return UserFinancials(
        user_id="u",
        accounts=[
            Account(account_type=rng.choice(list(AccountType)).value, current_balance=money())
            for _ in range(rng.randint(0, 6))
        ],
        cash_accounts=[CashAccount(balance=money()) for _ in range(rng.randint(0, 4))],
        retirement_positions=[
            RetirementPosition(
                fund_code=rng.choice(["G", "C FUND", "L-INCOME", "L 2050", "XYZ"]),
                units=Decimal(rng.randint(-5, 5000)) / 10,
            )
            for _ in range(rng.randint(0, 4))
        ],
        properties=[
            Property(
                estimated_value=money(),
                mortgage_balance=rng.choice([None, money()]),
            )
            for _ in range(rng.randint(0, 2))
        ],
        liabilities=[Liability(current_balance=money()) for _ in range(rng.randint(0, 3))],
    )


class TestConservation:
    """Totals always add up, whatever mix of data a user has."""

    PRICES = FundPriceSnapshot(
        price_date=SNAPSHOT_DATE,
        prices={"G": "18.25", "C": "80.10", "LINCOME": "25.10", "L2050": "33.20"},
    )

    @pytest.mark.parametrize("seed", range(25))
    def test_totals_conserve(self, seed):
        rng = random.Random(seed)
        financials = _random_financials(rng)

        breakdown = NetWorthSnapshotService.calculate_breakdown(financials, self.PRICES)

        assert breakdown.total_assets == (
            breakdown.cash_total
            + breakdown.investments_total
            + breakdown.retirement_total
            + breakdown.real_estate_value
        )
        assert breakdown.net_worth == breakdown.total_assets - breakdown.liabilities_total
        assert breakdown.real_estate_equity == breakdown.real_estate_value - breakdown.mortgage_total
        assert breakdown.cash_total == sum(
            (c.balance for c in financials.cash_accounts), Decimal("0")
        )
        assert breakdown.liabilities_total == sum(
            (li.current_balance for li in financials.liabilities), Decimal("0")
        ) + breakdown.mortgage_total
        assert breakdown.retirement_total >= 0


class TestRunBatch:
    def test_creates_one_row_per_eligible_user(self, db, service):
        users = [create_user(db) for _ in range(3)]
        create_user(db, is_active=False)
        create_user(db, is_test_account=True)
        for u in users:
            create_cash_account(db, u, "100")
        db.commit()

        result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert result.eligible_users == 3
        assert result.created == 3
        assert result.errors == 0
        rows = _rows(db)
        assert {r.user_id for r in rows} == {u.id for u in users}
        assert all(r.cash_total == Decimal("100") for r in rows)

    def test_second_run_is_idempotent(self, db, service):
        for _ in range(2):
            create_user(db)
        db.commit()

        first = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)
        second = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert first.created == 2
        assert second.created == 0
        assert second.skipped == 2
        assert len(_rows(db)) == 2

    def test_partial_existing_snapshots(self, db, service):
        done, pending = create_user(db), create_user(db)
        db.add(NetWorthSnapshot(user_id=done.id, snapshot_date=SNAPSHOT_DATE))
        db.commit()

        result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert result.created == 1
        assert result.skipped == 1
        assert {r.user_id for r in _rows(db)} == {done.id, pending.id}

    def test_users_with_no_data_get_zero_snapshot(self, db, service):
        u = create_user(db)
        db.commit()

        service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        row = _rows(db)[0]
        assert row.user_id == u.id
        assert row.total_net_worth == Decimal("0")

    def test_one_failing_user_does_not_stop_batch(self, db, service):
        users = [create_user(db) for _ in range(4)]
        db.commit()
        bad_id = users[1].id
        real = NetWorthSnapshotService.calculate_breakdown

        def flaky(financials, price_snapshot):
            if financials.user_id == bad_id:
                raise ValueError("corrupt balance")
            return real(financials, price_snapshot)

        with patch.object(service, "calculate_breakdown", side_effect=flaky):
            result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert result.created == 3
        assert result.errors == 1
        failed = [o for o in result.outcomes if o.status == OutcomeStatus.FAILED]
        assert failed[0].entity_id == bad_id
        assert "corrupt balance" in failed[0].error
        assert bad_id not in {r.user_id for r in _rows(db)}
        assert len(_rows(db)) == 3

    def test_no_eligible_users_is_not_an_error(self, db, service):
        create_user(db, is_test_account=True)
        db.commit()

        result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert result.eligible_users == 0
        assert result.created == 0
        assert _rows(db) == []

    def test_setup_failure_raises_batch_setup_error(self, db, service):
        create_user(db)
        db.commit()

        with patch.object(service, "load_financials", side_effect=RuntimeError("db down")):
            with pytest.raises(BatchSetupError, match="db down"):
                service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert _rows(db) == []

    def test_cancellation_commits_nothing(self, db, service):
        for _ in range(3):
            create_user(db)
        db.commit()
        cancel = threading.Event()
        cancel.set()

        result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE, cancel_event=cancel)

        assert result.cancelled is True
        assert _rows(db) == []

    def test_uses_latest_price_snapshot(self, db, service):
        u = create_user(db)
        create_position(db, u, "C", "10")
        create_fund_price_snapshot(db, {FundCode.C: "70"}, price_date=date(2024, 1, 10))
        create_fund_price_snapshot(db, {FundCode.C: "80"}, price_date=date(2024, 1, 11))
        db.commit()

        service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert _rows(db)[0].retirement_total == Decimal("800")

    def test_missing_price_snapshot_is_warning(self, db, service):
        u = create_user(db)
        create_position(db, u, "C", "10")
        db.commit()

        result = service.run_batch(db, snapshot_date=SNAPSHOT_DATE)

        assert result.created == 1
        assert result.warnings == 1
        assert result.errors == 0


class TestTriggerForUser:
    def test_creates_todays_snapshot(self, db, service, user):
        create_cash_account(db, user, "1234.56")
        db.commit()

        snapshot = service.trigger_for_user(db, user.id)

        assert snapshot.id is not None
        assert snapshot.cash_total == Decimal("1234.56")
        assert db.query(NetWorthSnapshot).count() == 1

    def test_upserts_existing_row(self, db, service, user):
        cash = create_cash_account(db, user, "100")
        db.commit()
        first = service.trigger_for_user(db, user.id)
        first_id = first.id

        cash.balance = Decimal("250")
        db.commit()
        second = service.trigger_for_user(db, user.id)

        assert second.id == first_id
        assert second.cash_total == Decimal("250")
        assert second.updated_at is not None
        assert db.query(NetWorthSnapshot).count() == 1

    def test_unknown_user_raises(self, db, service):
        with pytest.raises(EntityNotFoundError):
            service.trigger_for_user(db, "missing-user")


class TestComputeSnapshot:
    def test_returns_zero_snapshot_for_empty_user(self, db, service, user):
        snapshot = service.compute_snapshot(db, user.id, SNAPSHOT_DATE)

        assert snapshot.user_id == user.id
        assert snapshot.snapshot_date == SNAPSHOT_DATE
        assert snapshot.total_net_worth == Decimal("0")
        assert snapshot.id is None  # not persisted
