"""DailyTSP fund price feed client."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderNotConfiguredError,
)
from integrations.fund_price_protocol import FundPriceSet
from utils.fund_codes import FundCode, normalize_fund_code

logger = logging.getLogger(__name__)

PROVIDER_NAME = "dailytsp"


def parse_close_payload(payload: object) -> FundPriceSet | None:
    """Parse a DailyTSP ``close`` response.

    The feed maps a date key to fund display names and prices::

        {"2024-01-12": {"C Fund": 80.1, "L 2050": 33.2, "L Income": 25.1}}

    When several dates are present the latest one is used. Unknown fund
    names are ignored. Returns None for an empty payload.

    Raises:
        ProviderDataError: If the payload shape, date or a price is invalid.
    """
    if not isinstance(payload, dict):
        raise ProviderDataError("Expected a JSON object", provider_name=PROVIDER_NAME)
    if not payload:
        return None

    dated = {}
    for key in payload:
        try:
            dated[date.fromisoformat(key)] = key
        except (TypeError, ValueError) as e:
            raise ProviderDataError(
                f"Invalid price date {key!r}", provider_name=PROVIDER_NAME
            ) from e
    price_date = max(dated)
    date_key = dated[price_date]
    funds = payload[date_key]
    if not isinstance(funds, dict):
        raise ProviderDataError(
            f"Expected fund prices for {date_key}", provider_name=PROVIDER_NAME
        )

    prices: dict[FundCode, Decimal] = {}
    for name, value in funds.items():
        code = normalize_fund_code(name)
        if code is None:
            logger.debug("DailyTSP: ignoring unknown fund %r", name)
            continue
        if value is None:
            continue
        try:
            prices[code] = Decimal(str(value))
        except InvalidOperation as e:
            raise ProviderDataError(
                f"Invalid price {value!r} for {name}", provider_name=PROVIDER_NAME
            ) from e

    return FundPriceSet(price_date=price_date, prices=prices, source=PROVIDER_NAME)


class TspPriceClient:
    """Retirement price provider backed by the DailyTSP API."""

    def __init__(self, base_url: str | None = None, token: str | None = None):
        """Initialize the client.

        Args:
            base_url: API base URL (defaults to settings.TSP_API_BASE_URL)
            token: API token (defaults to settings.TSP_API_TOKEN)
        """
        self._base_url = base_url or settings.TSP_API_BASE_URL
        self._token = token or settings.TSP_API_TOKEN

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        return bool(self._base_url and self._token)

    def get_latest_prices(self, price_date: date | None = None) -> FundPriceSet | None:
        """Fetch closing prices, for ``price_date`` or the latest trading day.

        Raises:
            ProviderNotConfiguredError: If base URL or token are missing.
            ProviderAuthError: On HTTP 401/403.
            ProviderAPIError: On other HTTP errors.
            ProviderConnectionError: On network failures.
            ProviderDataError: If the payload cannot be parsed.
        """
        if not self.is_configured():
            raise ProviderNotConfiguredError(
                "TSP_API_BASE_URL and TSP_API_TOKEN must be set",
                provider_name=PROVIDER_NAME,
            )

        path = f"/close/{price_date.isoformat()}" if price_date else "/close"
        logger.info("DailyTSP: fetching %s", path)

        try:
            with httpx.Client(base_url=self._base_url, timeout=30.0) as client:
                response = client.get(path, params={"token": self._token})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise ProviderAuthError(
                    f"DailyTSP authentication failed (HTTP {status})",
                    provider_name=PROVIDER_NAME,
                ) from exc
            raise ProviderAPIError(
                f"DailyTSP API error (HTTP {status})",
                provider_name=PROVIDER_NAME,
                status_code=status,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"DailyTSP connection failed: {exc}",
                provider_name=PROVIDER_NAME,
            ) from exc
        except ValueError as exc:
            raise ProviderDataError(
                f"DailyTSP returned invalid JSON: {exc}",
                provider_name=PROVIDER_NAME,
            ) from exc

        return parse_close_payload(payload)
