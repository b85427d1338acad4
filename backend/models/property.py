"""Property model - real estate with an optional mortgage."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base
from models.utils import generate_uuid, utcnow


class Property(Base):
    """A real estate property.

    ``estimated_value`` is the gross value; ``mortgage_balance`` counts as a
    liability in net worth calculations.
    """

    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    estimated_value = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    mortgage_balance = Column(Numeric(18, 2), nullable=True)
    created_at = Column(DateTime, default=utcnow)
