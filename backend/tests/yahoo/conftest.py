"""Yahoo Finance integration test fixtures."""

import pytest

from integrations.yahoo_finance_client import YahooFinanceClient


@pytest.fixture
def yahoo_client():
    """Create a real YahooFinanceClient with a short lookback window."""
    return YahooFinanceClient(lookback_days=7)
