"""TSP fund code normalization.

Positions, feed payloads and cached snapshots all spell fund codes
differently ("G Fund", "GFUND", "G", "L-INCOME", "L Income", "L 2050").
Everything is funneled through ``normalize_fund_code`` so lookups agree.
"""

from enum import Enum


class FundCode(str, Enum):
    """Canonical TSP fund codes."""

    G = "G"
    F = "F"
    C = "C"
    S = "S"
    I = "I"  # noqa: E741
    L_INCOME = "LINCOME"
    L2025 = "L2025"
    L2030 = "L2030"
    L2035 = "L2035"
    L2040 = "L2040"
    L2045 = "L2045"
    L2050 = "L2050"
    L2055 = "L2055"
    L2060 = "L2060"
    L2065 = "L2065"
    L2070 = "L2070"
    L2075 = "L2075"


# Single-letter funds are also written with a "FUND" suffix
_FUND_SUFFIX = "FUND"


def _squash(code: str) -> str:
    return code.strip().upper().replace(" ", "").replace("-", "")


def normalize_fund_code(code: str | None) -> FundCode | None:
    """Map any spelling of a TSP fund code to its ``FundCode``.

    Strips spaces and hyphens, uppercases, and drops the ``FUND`` suffix of
    the single-letter funds. Returns None for blank or unknown codes.

    >>> normalize_fund_code("L-INCOME")
    <FundCode.L_INCOME: 'LINCOME'>
    >>> normalize_fund_code("c fund")
    <FundCode.C: 'C'>
    """
    if not code or not code.strip():
        return None
    squashed = _squash(code)
    if squashed.endswith(_FUND_SUFFIX) and len(squashed) == len(_FUND_SUFFIX) + 1:
        squashed = squashed[0]
    try:
        return FundCode(squashed)
    except ValueError:
        return None
