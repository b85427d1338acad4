"""SQLAlchemy ORM models."""

from .account import Account, AccountType
from .cash_account import CashAccount
from .external_connection import ConnectionSource, ConnectionStatus, ExternalConnection
from .fund_price_snapshot import FundPriceSnapshot
from .holding import Holding
from .liability import Liability
from .net_worth_snapshot import NetWorthSnapshot
from .property import Property
from .retirement_position import RetirementPosition
from .user import User
from .utils import generate_uuid, utcnow

__all__ = ["Account", "AccountType", "CashAccount", "ConnectionSource", "ConnectionStatus", "ExternalConnection", "FundPriceSnapshot", "Holding", "Liability", "NetWorthSnapshot", "Property", "RetirementPosition", "User", "generate_uuid", "utcnow"]
