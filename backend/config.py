"""Application configuration using pydantic-settings."""

import json
import re
from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_list(v: Any) -> Any:
    """Accept a JSON list or a comma-separated string for list settings."""
    if isinstance(v, str):
        stripped = v.strip()
        if not stripped:
            return []
        if stripped.startswith("["):
            return json.loads(stripped)
        return [part.strip() for part in stripped.split(",") if part.strip()]
    return v


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./networth.db"

    # Market data
    MARKET_DATA_EXCLUDED_SYMBOLS: Annotated[list[str], NoDecode] = []
    MARKET_DATA_EXCLUDED_SYMBOL_PATTERNS: Annotated[list[str], NoDecode] = []
    QUOTE_BATCH_SIZE: int = 100

    # DailyTSP fund price feed (optional)
    TSP_API_BASE_URL: str = ""
    TSP_API_TOKEN: str = ""

    # Connection aggregation service (optional)
    CONNECTION_SERVICE_URL: str = ""
    CONNECTION_SERVICE_TOKEN: str = ""

    # Job schedule (consumed by the scheduler, informational here)
    JOB_TIMEZONE: str = "America/New_York"
    FUND_PRICE_REFRESH_CRON: str = "0 18 * * 1-5"
    CONNECTION_SYNC_CRON: str = "0 22 * * *"
    PRICE_REFRESH_CRON: str = "0 23 * * *"
    NETWORTH_SNAPSHOT_CRON: str = "30 23 * * *"

    # Retry policy for batch setup failures
    JOB_RETRY_ATTEMPTS: int = 2
    JOB_RETRY_DELAYS_SECONDS: Annotated[list[int], NoDecode] = [60, 300]
    CONNECTION_SYNC_RETRY_ATTEMPTS: int = 3
    CONNECTION_SYNC_RETRY_DELAYS_SECONDS: Annotated[list[int], NoDecode] = [60, 300, 900]

    @field_validator(
        "MARKET_DATA_EXCLUDED_SYMBOLS",
        "MARKET_DATA_EXCLUDED_SYMBOL_PATTERNS",
        "JOB_RETRY_DELAYS_SECONDS",
        "CONNECTION_SYNC_RETRY_DELAYS_SECONDS",
        mode="before",
    )
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Allow list settings as ``AAA,BBB`` as well as a JSON array."""
        return _split_list(v)

    @field_validator("MARKET_DATA_EXCLUDED_SYMBOL_PATTERNS")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        """Reject exclusion patterns that are not valid regular expressions."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(
                    f"MARKET_DATA_EXCLUDED_SYMBOL_PATTERNS has invalid regex {pattern!r}: {e}"
                ) from e
        return v

    @field_validator("QUOTE_BATCH_SIZE")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1 or v > 500:
            raise ValueError(f"QUOTE_BATCH_SIZE must be between 1 and 500, got {v}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


@dataclass(frozen=True)
class RefreshConfig:
    """Immutable price-refresh configuration captured per job invocation.

    Symbols are stored uppercased for case-insensitive exact matching and
    patterns are compiled once with ``re.IGNORECASE``.
    """

    excluded_symbols: frozenset[str] = frozenset()
    excluded_patterns: tuple[re.Pattern, ...] = ()
    quote_batch_size: int = 100

    @classmethod
    def build(
        cls,
        excluded_symbols: list[str] | None = None,
        excluded_patterns: list[str] | None = None,
        quote_batch_size: int = 100,
    ) -> "RefreshConfig":
        return cls(
            excluded_symbols=frozenset(
                s.strip().upper() for s in (excluded_symbols or []) if s and s.strip()
            ),
            excluded_patterns=tuple(
                re.compile(p, re.IGNORECASE) for p in (excluded_patterns or [])
            ),
            quote_batch_size=quote_batch_size,
        )

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "RefreshConfig":
        """Build a snapshot of the current settings."""
        source = source or settings
        return cls.build(
            excluded_symbols=source.MARKET_DATA_EXCLUDED_SYMBOLS,
            excluded_patterns=source.MARKET_DATA_EXCLUDED_SYMBOL_PATTERNS,
            quote_batch_size=source.QUOTE_BATCH_SIZE,
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Scheduler retry policy: ``attempts`` retries after the first failure."""

    attempts: int = 2
    delays_seconds: tuple[int, ...] = (60, 300)

    def delay_for(self, retry_number: int) -> int:
        """Return the delay before the given 1-based retry.

        The last configured delay repeats when there are more retries than delays.
        """
        if not self.delays_seconds:
            return 0
        index = min(retry_number - 1, len(self.delays_seconds) - 1)
        return self.delays_seconds[index]


settings = Settings()
