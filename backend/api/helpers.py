"""Shared API helpers for route handlers."""

import logging
from typing import NoReturn

from fastapi import HTTPException

from integrations.exceptions import ProviderAuthError, ProviderError
from services.exceptions import ConnectionSyncError, EntityNotFoundError

logger = logging.getLogger(__name__)


def raise_http_error(exc: Exception, action: str) -> NoReturn:
    """Translate a manual-refresh failure into an HTTPException.

    Args:
        exc: The exception raised by the service.
        action: Short description for logs and messages, e.g. "price refresh".

    Raises:
        HTTPException:
            - 404 Not Found: The user/account/connection/job doesn't exist
            - 502 Bad Gateway: An upstream provider or sync failed
            - 500 Internal Server Error: Anything else (message hidden)
    """
    if isinstance(exc, EntityNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    if isinstance(exc, ConnectionSyncError):
        logger.warning("Connection sync failed during %s: %s", action, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if isinstance(exc, ProviderAuthError):
        logger.warning("Provider auth error during %s: %s", action, exc)
        raise HTTPException(
            status_code=502,
            detail=(
                f"Provider authentication failed for {exc.provider_name}. "
                "Please check your credentials and try again."
            ),
        ) from exc

    if isinstance(exc, ProviderError):
        logger.warning("Provider error during %s: %s", action, exc)
        raise HTTPException(
            status_code=502,
            detail=f"A provider error occurred during {action}. Check the logs for details.",
        ) from exc

    # Never expose str(exc) for unexpected errors
    logger.error("Unexpected error during %s", action, exc_info=exc)
    raise HTTPException(
        status_code=500,
        detail=f"An unexpected error occurred during {action}.",
    ) from exc
