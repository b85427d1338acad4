"""Typed exception hierarchy for upstream provider errors.

Quote, fund-price and connection-service clients raise these so jobs and
the refresh API can tell auth problems from transient network failures
and bad payloads.
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class ProviderNotConfiguredError(ProviderError):
    """Base URL or token missing from settings."""

    pass


class ProviderAuthError(ProviderError):
    """Credentials rejected (HTTP 401/403)."""

    pass


class ProviderConnectionError(ProviderError):
    """Network failures: timeouts, DNS resolution, dropped connections."""

    pass


class ProviderAPIError(ProviderError):
    """HTTP 4xx/5xx responses from the provider API."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name)


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass
