"""External API integrations.

This package contains:
- Market data protocol + Yahoo Finance client: latest quotes for holdings
- Fund price protocol + DailyTSP client: daily TSP fund prices
- Connection protocol + connection service client: linked institution sync
"""

from integrations.connection_protocol import (
    BalanceSyncResult,
    ExternalConnectionClient,
    HoldingsSyncResult,
    TransactionsSyncResult,
)
from integrations.fund_price_protocol import FundPriceSet, RetirementPriceProvider
from integrations.market_data_protocol import Quote, QuoteProvider

__all__ = [
    "BalanceSyncResult",
    "ExternalConnectionClient",
    "FundPriceSet",
    "HoldingsSyncResult",
    "Quote",
    "QuoteProvider",
    "RetirementPriceProvider",
    "TransactionsSyncResult",
]
