"""Utility functions for handling ticker symbols.

Decides which holding symbols are sent to the market quote provider.
"""

from config import RefreshConfig

# Retirement fund identifiers stored as holding symbols. These are priced by
# the TSP feed, never by the quote provider.
TSP_SYNTHETIC_CODES = (
    "GFUND",
    "FFUND",
    "CFUND",
    "SFUND",
    "IFUND",
    "LINCOME",
    *(f"L{year}" for year in range(2025, 2080, 5)),
)


def is_tsp_synthetic_code(symbol: str) -> bool:
    """Check if symbol contains one of the TSP fund identifiers.

    Matching is a case-insensitive substring test, so "TSP-GFUND" and
    "l2050" both count.
    """
    upper = symbol.upper()
    return any(code in upper for code in TSP_SYNTHETIC_CODES)


def is_excluded(symbol: str | None, config: RefreshConfig) -> bool:
    """Check if a holding symbol must be skipped by the price refresh.

    A symbol is excluded when it is blank, a TSP synthetic code, listed in
    ``config.excluded_symbols`` (case-insensitive), or matched anywhere by one
    of ``config.excluded_patterns``.
    """
    if symbol is None or not symbol.strip():
        return True
    if is_tsp_synthetic_code(symbol):
        return True
    if symbol.strip().upper() in config.excluded_symbols:
        return True
    return any(pattern.search(symbol) for pattern in config.excluded_patterns)
