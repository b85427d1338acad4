"""Unit tests for the DailyTSP fund price client."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderNotConfiguredError,
)
from integrations.tsp_price_client import TspPriceClient, parse_close_payload
from utils.fund_codes import FundCode

_RealClient = httpx.Client

CLOSE_PAYLOAD = {
    "2024-01-12": {
        "G Fund": 18.2513,
        "C Fund": "80.1012",
        "L Income": 25.1042,
        "L 2050": 33.2005,
        "Some New Fund": 10.0,
    }
}


def _patched_client(handler):
    """Patch httpx.Client so every instance routes through ``handler``."""
    transport = httpx.MockTransport(handler)

    def factory(**kwargs):
        return _RealClient(transport=transport, **kwargs)

    return patch("integrations.tsp_price_client.httpx.Client", side_effect=factory)


@pytest.fixture
def client():
    return TspPriceClient(base_url="https://tsp.example.test/api", token="secret")


class TestParseClosePayload:
    def test_parses_known_funds(self):
        price_set = parse_close_payload(CLOSE_PAYLOAD)

        assert price_set.price_date == date(2024, 1, 12)
        assert price_set.source == "dailytsp"
        assert price_set.prices == {
            FundCode.G: Decimal("18.2513"),
            FundCode.C: Decimal("80.1012"),
            FundCode.L_INCOME: Decimal("25.1042"),
            FundCode.L2050: Decimal("33.2005"),
        }

    def test_empty_payload_is_none(self):
        assert parse_close_payload({}) is None

    def test_null_prices_skipped(self):
        price_set = parse_close_payload({"2024-01-12": {"G Fund": None, "F Fund": 19.1}})
        assert set(price_set.prices) == {FundCode.F}

    def test_latest_date_wins(self):
        payload = {
            "2024-01-12": {"G Fund": 2},
            "2024-01-10": {"G Fund": 0},
            "2024-01-11": {"G Fund": 1},
        }

        price_set = parse_close_payload(payload)

        assert price_set.price_date == date(2024, 1, 12)
        assert price_set.prices == {FundCode.G: Decimal("2")}

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"not-a-date": {"G Fund": 1}},
            {"2024-01-12": [1, 2]},
            {"2024-01-12": {"G Fund": "n/a"}},
        ],
    )
    def test_malformed_payload_raises(self, payload):
        with pytest.raises(ProviderDataError):
            parse_close_payload(payload)


class TestGetLatestPrices:
    def test_requests_latest_close_with_token(self, client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=CLOSE_PAYLOAD)

        with _patched_client(handler):
            price_set = client.get_latest_prices()

        assert seen[0].url.path == "/api/close"
        assert seen[0].url.params["token"] == "secret"
        assert price_set.prices[FundCode.G] == Decimal("18.2513")

    def test_requests_specific_date(self, client):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=CLOSE_PAYLOAD)

        with _patched_client(handler):
            client.get_latest_prices(date(2024, 1, 12))

        assert seen == ["/api/close/2024-01-12"]

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure(self, client, status):
        with _patched_client(lambda request: httpx.Response(status)):
            with pytest.raises(ProviderAuthError):
                client.get_latest_prices()

    def test_server_error_is_api_error(self, client):
        with _patched_client(lambda request: httpx.Response(503)):
            with pytest.raises(ProviderAPIError) as exc_info:
                client.get_latest_prices()

        assert exc_info.value.status_code == 503

    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError, httpx.ReadTimeout, httpx.ReadError, httpx.RemoteProtocolError],
    )
    def test_transport_failures(self, client, error):
        def handler(request):
            raise error("connection dropped", request=request)

        with _patched_client(handler):
            with pytest.raises(ProviderConnectionError):
                client.get_latest_prices()

    def test_invalid_json(self, client):
        with _patched_client(lambda request: httpx.Response(200, content=b"<html>")):
            with pytest.raises(ProviderDataError):
                client.get_latest_prices()

    def test_not_configured(self):
        with patch("integrations.tsp_price_client.settings") as mock_settings:
            mock_settings.TSP_API_BASE_URL = ""
            mock_settings.TSP_API_TOKEN = ""
            unconfigured = TspPriceClient()

        assert unconfigured.is_configured() is False
        with pytest.raises(ProviderNotConfiguredError):
            unconfigured.get_latest_prices()
