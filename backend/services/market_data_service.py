"""Market data service - thin orchestrator for the quote provider."""

import logging
from decimal import Decimal
from typing import Optional

from integrations.market_data_protocol import QuoteProvider

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def chunked(items: list[str], size: int) -> list[list[str]]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


class MarketDataService:
    """Fetches latest prices through a pluggable quote provider."""

    def __init__(self, provider: Optional[QuoteProvider] = None):
        """Initialize with an optional provider for dependency injection.

        Args:
            provider: Quote provider. If None, a YahooFinanceClient is
                     created on first use.
        """
        self._provider = provider

    @property
    def provider(self) -> QuoteProvider:
        """Get the quote provider, creating if not provided."""
        if self._provider is None:
            from integrations.yahoo_finance_client import YahooFinanceClient

            self._provider = YahooFinanceClient()
        return self._provider

    def get_quotes(
        self, symbols: list[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> dict[str, Decimal]:
        """Fetch latest prices, normalizing symbols to uppercase.

        Symbols are de-duplicated and requested sequentially in chunks of
        ``batch_size``. Only positive prices are kept; if a symbol shows up
        in more than one batch the last price wins.

        Args:
            symbols: Ticker symbols (case-insensitive).
            batch_size: Max symbols per provider call.

        Returns:
            Dict mapping uppercase symbol to price.

        Raises:
            ProviderError: Propagated from the provider.
        """
        if not symbols:
            return {}

        normalized = list(dict.fromkeys(s.upper() for s in symbols))
        batches = chunked(normalized, batch_size)
        prices: dict[str, Decimal] = {}

        for index, batch in enumerate(batches, start=1):
            quotes = self.provider.get_quotes(batch)
            logger.debug(
                "Quote batch %d/%d: %d symbols requested, %d quotes returned",
                index, len(batches), len(batch), len(quotes),
            )
            for quote in quotes:
                if quote.price is not None and quote.price > 0:
                    prices[quote.symbol.upper()] = quote.price

        logger.info(
            "Fetched %d prices for %d symbols in %d batches",
            len(prices), len(normalized), len(batches),
        )
        return prices
