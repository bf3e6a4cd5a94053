"""
DevLoop HTTP Client.

Authenticated async client for the target service API.
Requires Python 3.11+.
"""

import httpx

from utils.config import ReloadSettings


def create_http_client(
    settings: ReloadSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create the shared client used for every notification.

    Credentials and timeouts are resolved once here; the client is safe
    to use from concurrent coroutines on the same event loop.

    Args:
        settings: Reload API settings
        transport: Optional transport override, used by tests

    Returns:
        Configured httpx.AsyncClient; the caller must close it
    """
    return httpx.AsyncClient(
        base_url=settings.base_url,
        auth=httpx.BasicAuth(settings.username, settings.password),
        timeout=settings.request_timeout,
        headers={"Accept": "application/json"},
        transport=transport,
    )
