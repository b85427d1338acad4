"""Holding model - a position in a single symbol within an account."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utcnow


class Holding(Base):
    """A holding record within an account."""

    __tablename__ = "holdings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    symbol = Column(String, nullable=False)
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    current_price = Column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    last_price_update = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    # Relationships
    account = relationship("Account", back_populates="holdings")
