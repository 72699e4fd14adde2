"""Client for the external service that turns file paths into playable URLs."""
from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from ..schemas import StreamResponse

logger = logging.getLogger(__name__)


class StreamingService:
    """Requests stream URLs for on-disk paths.

    Every failure mode (HTTP error, transport error, missing ``url``) is
    reported as ``None`` so callers can treat it as "not ready yet".
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        verify_ssl: bool = True,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        if not verify_ssl:
            logger.warning("TLS verification disabled for streaming API %s", url)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
            headers={"Authorization": token},
        )

    async def request_url(self, path: str) -> str | None:
        """Return the stream URL for ``path`` or None when it is not available."""

        logger.info("Requesting stream URL for %s", path)
        try:
            response = await self._client.post(self._url, json={"path": path})
        except httpx.TimeoutException:
            logger.warning("Streaming API timed out for %s", path)
            return None
        except httpx.HTTPError as exc:
            logger.warning("Streaming API request failed for %s: %s", path, exc)
            return None

        if response.status_code != 200:
            logger.warning("Streaming API returned HTTP %s for %s", response.status_code, path)
            return None

        try:
            body = StreamResponse.model_validate_json(response.content)
        except ValidationError:
            logger.warning("Streaming API returned an unexpected body for %s", path)
            return None
        if not body.url:
            logger.info("Streaming API has no URL for %s yet", path)
            return None
        return body.url

    async def aclose(self) -> None:
        await self._client.aclose()
