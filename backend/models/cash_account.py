"""CashAccount model - checking/savings balances kept by the connection sync."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base
from models.utils import generate_uuid, utcnow


class CashAccount(Base):
    """A cash account balance. Written by the external connection collaborator."""

    __tablename__ = "cash_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    institution_name = Column(String, nullable=True)
    balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
