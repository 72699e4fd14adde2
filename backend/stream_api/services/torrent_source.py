"""Download of torrent files from the catalog's tracker."""
from __future__ import annotations

import logging

import httpx

from ...resolver.errors import TorrentSourceError

logger = logging.getLogger(__name__)


class TorrentSource:
    """Fetches raw torrent files identified by catalog id."""

    def __init__(
        self,
        url_template: str,
        api_key: str = "",
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url_template = url_template
        self._api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    def download_url(self, catalog_id: str) -> str:
        """Return the URL of the torrent file for ``catalog_id``."""

        return self._url_template.format(catalog_id=catalog_id, api_key=self._api_key)

    async def fetch(self, catalog_id: str) -> bytes:
        """Download the torrent file bytes, failing on any non-200 answer."""

        url = self.download_url(catalog_id)
        logger.info("Downloading torrent file for %s", catalog_id)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise TorrentSourceError(f"Failed to download torrent for {catalog_id}: {exc}") from exc

        if response.status_code != 200:
            raise TorrentSourceError(
                f"Torrent download for {catalog_id} returned HTTP {response.status_code}"
            )
        logger.debug("Torrent file for %s is %.2f KB", catalog_id, len(response.content) / 1024)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
