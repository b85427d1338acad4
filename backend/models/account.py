"""Account model - an investment or retirement account with holdings."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utcnow


class AccountType(str, Enum):
    """Account types stored in ``Account.account_type``."""

    BROKERAGE = "brokerage"
    RETIREMENT_401K = "retirement_401k"
    RETIREMENT_IRA = "retirement_ira"
    RETIREMENT_ROTH = "retirement_roth"
    TSP = "tsp"
    HSA = "hsa"
    CHECKING = "checking"
    SAVINGS = "savings"
    MONEY_MARKET = "money_market"
    CERTIFICATE_OF_DEPOSIT = "certificate_of_deposit"
    CRYPTO_EXCHANGE = "crypto_exchange"
    CRYPTO_WALLET = "crypto_wallet"
    REAL_ESTATE = "real_estate"
    BUSINESS = "business"
    OTHER = "other"


# Legacy cash-style account types; cash is read from CashAccount instead.
CASH_ACCOUNT_TYPES = frozenset({
    AccountType.CHECKING.value,
    AccountType.SAVINGS.value,
    AccountType.MONEY_MARKET.value,
    AccountType.CERTIFICATE_OF_DEPOSIT.value,
})

# Types whose current_balance counts toward the investments total.
INVESTMENT_ACCOUNT_TYPES = frozenset({
    AccountType.BROKERAGE.value,
    AccountType.RETIREMENT_IRA.value,
    AccountType.RETIREMENT_401K.value,
    AccountType.RETIREMENT_ROTH.value,
    AccountType.HSA.value,
})

ACTIVE_LIFECYCLE_STATE = "Active"


class Account(Base):
    """An account owned by a user.

    ``current_balance`` is maintained by the price refresh job as the sum of
    quantity x current_price over the account's holdings.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False, default=AccountType.BROKERAGE.value)
    institution_name = Column(String, nullable=True)
    current_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    is_active = Column(Boolean, default=True, nullable=False)
    refresh_enabled = Column(Boolean, default=True, nullable=False)
    lifecycle_state = Column(String, nullable=False, default=ACTIVE_LIFECYCLE_STATE)
    last_external_sync = Column(DateTime, nullable=True)  # Last manual price refresh
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    # Relationships
    user = relationship("User")
    holdings = relationship(
        "Holding",
        back_populates="account",
        order_by="Holding.created_at",
    )
