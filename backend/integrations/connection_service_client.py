"""HTTP client for the connection aggregation service."""

import logging

import httpx

from config import settings
from integrations.connection_protocol import (
    BalanceSyncResult,
    HoldingsSyncResult,
    TransactionsSyncResult,
)
from integrations.exceptions import (
    ProviderConnectionError,
    ProviderDataError,
    ProviderNotConfiguredError,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "connection-service"


def _error_message(response: httpx.Response) -> str:
    """Pull a readable error out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_message", "detail", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class ConnectionServiceClient:
    """External connection client that delegates to the aggregation service.

    Endpoints (all POST, JSON response):
    - ``/connections/{id}/sync``: cash balances
    - ``/connections/{id}/investments/sync``: investment holdings
    - ``/connections/{id}/transactions/sync``: transactions
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._base_url = base_url or settings.CONNECTION_SERVICE_URL
        self._token = token or settings.CONNECTION_SERVICE_TOKEN
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        return bool(self._base_url)

    @property
    def client(self) -> httpx.Client:
        """Get the HTTP client, creating it on first use."""
        if self._client is None:
            if not self.is_configured():
                raise ProviderNotConfiguredError(
                    "CONNECTION_SERVICE_URL must be set", provider_name=PROVIDER_NAME
                )
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.Client(
                base_url=self._base_url,
                headers=headers,
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _post(self, path: str) -> tuple[dict | None, str | None]:
        """POST to the service and return ``(body, error_message)``.

        Exactly one of the pair is None. HTTP error statuses come back as an
        error message; transport failures raise.
        """
        try:
            response = self.client.post(path)
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"Connection service unreachable: {exc}", provider_name=PROVIDER_NAME
            ) from exc

        if response.is_error:
            message = _error_message(response)
            logger.debug("Connection service %s failed: %s", path, message)
            return None, message

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                f"Connection service returned invalid JSON for {path}",
                provider_name=PROVIDER_NAME,
            ) from exc
        if not isinstance(body, dict):
            raise ProviderDataError(
                f"Connection service returned unexpected payload for {path}",
                provider_name=PROVIDER_NAME,
            )
        return body, None

    def sync_balances(self, connection_id: str) -> BalanceSyncResult:
        body, error = self._post(f"/connections/{connection_id}/sync")
        if error is not None:
            return BalanceSyncResult(success=False, error_message=error)
        return BalanceSyncResult(
            success=bool(body.get("success", True)),
            accounts_updated=int(body.get("accounts_updated", 0)),
            error_message=body.get("error_message"),
        )

    def sync_holdings(self, connection_id: str) -> HoldingsSyncResult:
        body, error = self._post(f"/connections/{connection_id}/investments/sync")
        if error is not None:
            return HoldingsSyncResult(success=False, error_message=error)
        return HoldingsSyncResult(
            success=bool(body.get("success", True)),
            accounts_updated=int(body.get("accounts_updated", 0)),
            holdings_updated=int(body.get("holdings_updated", 0)),
            error_message=body.get("error_message"),
        )

    def sync_transactions(self, connection_id: str) -> TransactionsSyncResult:
        body, error = self._post(f"/connections/{connection_id}/transactions/sync")
        if error is not None:
            return TransactionsSyncResult(success=False, error_message=error)
        return TransactionsSyncResult(
            success=bool(body.get("success", True)),
            added=int(body.get("added", 0)),
            modified=int(body.get("modified", 0)),
            removed=int(body.get("removed", 0)),
            error_message=body.get("error_message"),
        )
