"""Test fixtures and sample data."""
import pytest
from datetime import date
from decimal import Decimal

from models import (
    Account,
    CashAccount,
    ConnectionSource,
    ConnectionStatus,
    ExternalConnection,
    FundPriceSnapshot,
    Holding,
    Liability,
    Property,
    RetirementPosition,
    User,
)
from sqlalchemy.orm import Session
from utils.fund_codes import FundCode

_email_counter = 0


def create_user(
    db: Session,
    email: str | None = None,
    is_active: bool = True,
    is_test_account: bool = False,
) -> User:
    """Create and flush a user. Emails are unique per call unless given."""
    global _email_counter
    if email is None:
        _email_counter += 1
        email = f"user{_email_counter}@example.com"
    user = User(email=email, is_active=is_active, is_test_account=is_test_account)
    db.add(user)
    db.flush()
    return user


def create_account(
    db: Session,
    user: User,
    account_type: str = "brokerage",
    current_balance: Decimal | str = "0",
    holdings: list[tuple[str, str, str]] | None = None,
    refresh_enabled: bool = True,
    lifecycle_state: str = "Active",
    is_active: bool = True,
    name: str = "Test Account",
) -> Account:
    """Create an account with optional holdings.

    Args:
        holdings: List of (symbol, quantity, current_price) tuples
    """
    account = Account(
        user_id=user.id,
        name=name,
        account_type=account_type,
        current_balance=Decimal(current_balance),
        refresh_enabled=refresh_enabled,
        lifecycle_state=lifecycle_state,
        is_active=is_active,
    )
    db.add(account)
    db.flush()
    for symbol, quantity, price in holdings or []:
        db.add(
            Holding(
                account_id=account.id,
                symbol=symbol,
                quantity=Decimal(quantity),
                current_price=Decimal(price),
            )
        )
    db.flush()
    db.refresh(account)
    return account


def create_cash_account(db: Session, user: User, balance: Decimal | str) -> CashAccount:
    cash = CashAccount(user_id=user.id, name="Checking", balance=Decimal(balance))
    db.add(cash)
    db.flush()
    return cash


def create_property(
    db: Session,
    user: User,
    estimated_value: Decimal | str,
    mortgage_balance: Decimal | str | None = None,
) -> Property:
    prop = Property(
        user_id=user.id,
        name="Home",
        estimated_value=Decimal(estimated_value),
        mortgage_balance=Decimal(mortgage_balance) if mortgage_balance is not None else None,
    )
    db.add(prop)
    db.flush()
    return prop


def create_liability(db: Session, user: User, balance: Decimal | str) -> Liability:
    liability = Liability(user_id=user.id, name="Car Loan", current_balance=Decimal(balance))
    db.add(liability)
    db.flush()
    return liability


def create_position(
    db: Session, user: User, fund_code: str, units: Decimal | str
) -> RetirementPosition:
    position = RetirementPosition(user_id=user.id, fund_code=fund_code, units=Decimal(units))
    db.add(position)
    db.flush()
    return position


def create_fund_price_snapshot(
    db: Session,
    prices: dict[FundCode, Decimal | str],
    price_date: date = date(2024, 1, 12),
) -> FundPriceSnapshot:
    snapshot = FundPriceSnapshot(
        price_date=price_date,
        prices={code.value: str(price) for code, price in prices.items()},
        data_source="test",
    )
    db.add(snapshot)
    db.flush()
    return snapshot


def create_connection(
    db: Session,
    user: User,
    source: str = ConnectionSource.CASH.value,
    status: str = ConnectionStatus.CONNECTED.value,
    institution_name: str = "Test Bank",
) -> ExternalConnection:
    connection = ExternalConnection(
        user_id=user.id,
        source=source,
        status=status,
        institution_name=institution_name,
    )
    db.add(connection)
    db.flush()
    return connection


@pytest.fixture
def user(db: Session) -> User:
    """Create an active, non-test user."""
    u = create_user(db, email="owner@example.com")
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def test_account_user(db: Session) -> User:
    """Create a user flagged as a test account."""
    u = create_user(db, email="qa@example.com", is_test_account=True)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def brokerage_account(db: Session, user: User) -> Account:
    """Create a brokerage account with two priced holdings."""
    account = create_account(
        db,
        user,
        current_balance="2000",
        holdings=[("AAPL", "10", "100"), ("VTI", "5", "200")],
        name="Brokerage",
    )
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def fund_price_snapshot(db: Session) -> FundPriceSnapshot:
    """Create a cached TSP price set for a few funds."""
    snapshot = create_fund_price_snapshot(
        db,
        {
            FundCode.G: "18.25",
            FundCode.C: "80.10",
            FundCode.L_INCOME: "25.10",
            FundCode.L2050: "33.20",
        },
    )
    db.commit()
    db.refresh(snapshot)
    return snapshot
