"""FundPriceSnapshot model - one pull of the retirement fund price feed."""

from decimal import Decimal

from sqlalchemy import JSON, Column, Date, DateTime, String

from database import Base
from models.utils import generate_uuid, utcnow
from utils.fund_codes import normalize_fund_code


class FundPriceSnapshot(Base):
    """Daily TSP fund prices.

    ``prices`` maps canonical fund codes (see ``utils.fund_codes.FundCode``)
    to decimal strings. Rows written by other tools may use other spellings
    of the codes; ``price_for`` normalizes both sides. The row with the latest ``price_date`` is the cache
    read by the net worth snapshot job.
    """

    __tablename__ = "fund_price_snapshots"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    price_date = Column(Date, nullable=False, index=True)
    prices = Column(JSON, nullable=False, default=dict)
    data_source = Column(String, nullable=False, default="dailytsp")
    created_at = Column(DateTime, default=utcnow)

    def price_for(self, fund_code: str) -> Decimal | None:
        """Look up a price by any spelling of the fund code."""
        code = normalize_fund_code(fund_code)
        if code is None:
            return None
        for key, raw in (self.prices or {}).items():
            if raw is not None and normalize_fund_code(key) is code:
                return Decimal(str(raw))
        return None
