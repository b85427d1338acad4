"""Retirement fund price provider protocol definitions."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol

from utils.fund_codes import FundCode


@dataclass
class FundPriceSet:
    """Closing prices for the TSP fund family on one trading date."""

    price_date: date
    prices: dict[FundCode, Decimal] = field(default_factory=dict)
    source: str = ""

    def is_empty(self) -> bool:
        return not any(price > 0 for price in self.prices.values())


class RetirementPriceProvider(Protocol):
    """Protocol for retirement fund price feeds."""

    @property
    def provider_name(self) -> str:
        ...

    def get_latest_prices(self, price_date: date | None = None) -> FundPriceSet | None:
        """Fetch fund prices for ``price_date``, or the latest available when None.

        Returns:
            The price set, or None when the feed has nothing for that date.
        """
        ...
