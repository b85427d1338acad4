"""Yahoo Finance quote provider implementation."""

import logging
from datetime import date, timedelta
from decimal import Decimal

import yfinance as yf

from integrations.exceptions import ProviderConnectionError
from integrations.market_data_protocol import Quote

logger = logging.getLogger(__name__)

# Calendar days to look back so weekends and holidays still yield a close
LOOKBACK_DAYS = 10


class YahooFinanceClient:
    """Quote provider using Yahoo Finance (yfinance library).

    Handles equities, ETFs, and mutual funds. The "latest price" of a symbol
    is its most recent daily close within the lookback window.
    """

    def __init__(self, lookback_days: int = LOOKBACK_DAYS):
        self._lookback_days = lookback_days

    @property
    def provider_name(self) -> str:
        return "yahoo"

    def get_quotes(self, symbols: list[str], as_of: date | None = None) -> list[Quote]:
        """Fetch the latest close for each symbol from Yahoo Finance.

        Args:
            symbols: List of ticker symbols.
            as_of: Last trading date to consider. Defaults to today.

        Returns:
            Quotes for the symbols that had at least one close in the window.

        Raises:
            ProviderConnectionError: If the download itself fails.
        """
        if not symbols:
            return []

        end_date = as_of or date.today()
        download_start = end_date - timedelta(days=self._lookback_days)
        # yfinance end is exclusive, so add one day
        download_end = end_date + timedelta(days=1)

        logger.info(
            "Yahoo Finance: fetching quotes for %d symbols (as of %s)",
            len(symbols), end_date,
        )

        try:
            df = yf.download(
                tickers=symbols,
                start=download_start.isoformat(),
                end=download_end.isoformat(),
                auto_adjust=True,
                progress=False,
            )
        except Exception as e:
            raise ProviderConnectionError(
                f"yfinance download failed: {e}", provider_name=self.provider_name
            ) from e

        if df.empty:
            return []

        # Recent yfinance returns (metric, symbol) columns even for one ticker
        multi_index = df.columns.nlevels > 1
        quotes: list[Quote] = []

        for symbol in symbols:
            try:
                if multi_index:
                    if ("Close", symbol) not in df.columns:
                        continue
                    closes = df[("Close", symbol)].dropna()
                else:
                    if "Close" not in df.columns:
                        continue
                    closes = df["Close"].dropna()

                closes = closes[closes.index.date <= end_date]
                if closes.empty:
                    continue

                quotes.append(
                    Quote(
                        symbol=symbol,
                        price=Decimal(str(round(float(closes.iloc[-1]), 6))),
                        price_date=closes.index[-1].date(),
                        source=self.provider_name,
                    )
                )
            except Exception:
                logger.warning("Failed to parse quote for %s", symbol, exc_info=True)

        return quotes
