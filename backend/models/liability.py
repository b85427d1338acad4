"""Liability model - loans, cards and other debts."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base
from models.utils import generate_uuid, utcnow


class Liability(Base):
    __tablename__ = "liabilities"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    current_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow)
