"""NetWorthSnapshot model - one aggregated net worth row per user per day."""

from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint

from database import Base
from models.utils import generate_uuid, utcnow


class NetWorthSnapshot(Base):
    """Daily net worth breakdown for a user.

    ``real_estate_equity`` is property value net of mortgages and is for
    display only; ``total_net_worth`` is computed from gross property value
    with mortgages counted in ``liabilities_total``.
    """

    __tablename__ = "net_worth_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "snapshot_date", name="uq_net_worth_snapshot_user_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False)
    cash_total = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    investments_total = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    retirement_total = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    real_estate_equity = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    liabilities_total = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total_net_worth = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, nullable=True)
