"""
DevLoop Reload Notifier.

Tells the target service to initialize and to hot-reload the plugin.
Requires Python 3.11+.
"""

import httpx

from utils.logger import LoggerMixin


class ReloadNotifier(LoggerMixin):
    """
    Best-effort initialize/reload signals over HTTP.

    Both calls log and swallow failures: a notification problem never
    stops the watch loop. Nothing is retried.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        initialize_path: str,
        reload_path: str,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            client: Shared, authenticated HTTP client
            initialize_path: Path of the initialize endpoint
            reload_path: Path of the reload endpoint, with a {name} placeholder
        """
        self._client = client
        self._initialize_path = initialize_path
        self._reload_path = reload_path

    async def _post(self, event: str, url: str, **context: str) -> bool:
        try:
            response = await self._client.post(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.log.error(f"{event}_failed", url=url, error=str(e), **context)
            return False

        self.log.info(f"{event}_sent", status=response.status_code, **context)
        return True

    async def initialize(self) -> bool:
        """
        Prepare the target service for the plugin about to be loaded.

        Returns:
            True if the service accepted the request
        """
        return await self._post("initialize", self._initialize_path)

    async def reload(self, target: str) -> bool:
        """
        Ask the target service to reload a plugin.

        Args:
            target: Name of the plugin to reload

        Returns:
            True if the service accepted the request
        """
        url = self._reload_path.format(name=target)
        return await self._post("reload", url, target=target)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
