"""Market data provider protocol definitions.

Defines the interface for quote providers used by the holding price
refresh. Callers are responsible for chunking symbol lists.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol


@dataclass
class Quote:
    """Latest known price for a symbol."""

    symbol: str
    price: Decimal
    price_date: date | None = None  # Trading date of the close, when known
    source: str = ""  # e.g., "yahoo"


class QuoteProvider(Protocol):
    """Protocol for market quote providers."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'yahoo')."""
        ...

    def get_quotes(self, symbols: list[str]) -> list[Quote]:
        """Fetch the latest price for each symbol.

        Args:
            symbols: Ticker symbols, at most one batch worth.

        Returns:
            One Quote per symbol the provider could price. Unknown symbols
            are omitted rather than raising.
        """
        ...
