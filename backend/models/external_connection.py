"""ExternalConnection model - a linked institution data source."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String

from database import Base
from models.utils import generate_uuid, utcnow


class ConnectionStatus(str, Enum):
    NOT_CONNECTED = "not_connected"
    CONNECTED = "connected"
    SYNCING = "syncing"
    SYNC_FAILED = "sync_failed"
    EXPIRED = "expired"  # Token expired, re-auth needed
    DISCONNECTED = "disconnected"  # User disconnected intentionally


class ConnectionSource(str, Enum):
    """Which sync path a connection takes."""

    CASH = "cash"
    INVESTMENT = "investment"


class ExternalConnection(Base):
    """A persisted link to an external financial institution.

    Cash connections sync balances then transactions; investment connections
    sync holdings then transactions.
    """

    __tablename__ = "external_connections"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    institution_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default=ConnectionStatus.CONNECTED.value)
    source = Column(String, nullable=False, default=ConnectionSource.CASH.value)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
