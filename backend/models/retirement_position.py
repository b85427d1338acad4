"""RetirementPosition model - units held in a TSP fund."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base
from models.utils import generate_uuid, utcnow


class RetirementPosition(Base):
    """Units of a retirement fund owned by a user.

    ``fund_code`` is stored as entered ("L2050", "L-INCOME", "G Fund", ...);
    lookups go through ``utils.fund_codes.normalize_fund_code``.
    """

    __tablename__ = "retirement_positions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    fund_code = Column(String, nullable=False)
    units = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow)
