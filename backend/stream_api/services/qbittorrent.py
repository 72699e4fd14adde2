"""Typed async client for the qBittorrent Web API v2."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx
from pydantic import ValidationError

from ...resolver.errors import DaemonAuthError, DaemonError
from ..schemas import DaemonFileModel, DaemonTorrentState, HashVerification, TransferStats

logger = logging.getLogger(__name__)


class QBittorrentClient:
    """Holds one cookie-authenticated session against a qBittorrent daemon.

    The client never re-authenticates on its own: a rejected session surfaces
    as ``DaemonAuthError`` and the owner decides whether to reconnect.
    """

    MAX_PRIORITY = 7
    # 0 would skip the file entirely; 1 keeps siblings downloading behind the target
    LOW_PRIORITY = 1

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._host = host.rstrip("/")
        self._username = username
        self._password = password
        self._client = httpx.AsyncClient(
            base_url=self._host,
            timeout=timeout,
            transport=transport,
            headers={"Referer": self._host},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def authenticate(self) -> None:
        """Log in and keep the session cookie on the underlying client."""

        logger.info("Logging in to qBittorrent at %s as %s", self._host, self._username)
        try:
            response = await self._client.post(
                "/api/v2/auth/login",
                data={"username": self._username, "password": self._password},
            )
        except httpx.HTTPError as exc:
            raise DaemonAuthError(f"Failed to reach qBittorrent at {self._host}: {exc}") from exc

        if response.status_code != 200 or response.text.strip() != "Ok.":
            raise DaemonAuthError(
                f"qBittorrent rejected the login (HTTP {response.status_code}: {response.text.strip()!r})"
            )
        logger.info("Connected to qBittorrent at %s", self._host)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise DaemonError(f"qBittorrent request {method} {path} failed: {exc}") from exc
        if response.status_code == 403:
            raise DaemonAuthError(f"qBittorrent session rejected for {path}")
        return response

    async def verify_by_hash(self, info_hash: str) -> HashVerification:
        """Look a torrent up by hash and return its live state when present."""

        response = await self._request("GET", "/api/v2/torrents/info", params={"hashes": info_hash})
        if response.status_code != 200:
            logger.warning("Hash lookup for %s returned HTTP %s", info_hash, response.status_code)
            return HashVerification(exists=False)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Hash lookup for %s returned invalid JSON", info_hash)
            return HashVerification(exists=False)

        if not isinstance(payload, list) or not payload:
            return HashVerification(exists=False)

        try:
            state = DaemonTorrentState.model_validate(payload[0])
        except ValidationError as exc:
            raise DaemonError(f"Unexpected torrent info payload for {info_hash}: {exc}") from exc
        return HashVerification(exists=True, state=state)

    async def existing_hashes(self, hashes: Iterable[str]) -> set[str]:
        """Return which of ``hashes`` the daemon knows, using a single request."""

        wanted = [value.lower() for value in hashes if value]
        if not wanted:
            return set()

        response = await self._request(
            "GET", "/api/v2/torrents/info", params={"hashes": "|".join(wanted)}
        )
        if response.status_code != 200:
            logger.warning("Batch hash lookup returned HTTP %s", response.status_code)
            return set()
        try:
            payload = response.json()
        except ValueError:
            return set()
        return {
            str(item["hash"]).lower()
            for item in payload
            if isinstance(item, dict) and item.get("hash")
        }

    async def add_from_url(
        self,
        url: str,
        save_path: str | None = None,
        *,
        sequential: bool = True,
        first_last_piece: bool = True,
    ) -> None:
        """Ask the daemon to fetch and add a torrent.

        Success is only observable through a later ``verify_by_hash``.
        """

        data = {
            "urls": url,
            "sequentialDownload": "true" if sequential else "false",
            "firstLastPiecePrio": "true" if first_last_piece else "false",
        }
        if save_path:
            data["savepath"] = save_path

        try:
            response = await self._request("POST", "/api/v2/torrents/add", data=data)
        except DaemonAuthError:
            raise
        except DaemonError as exc:
            logger.warning("Adding torrent failed: %s", exc)
            return

        if response.status_code == 200:
            logger.info("Torrent add accepted (save path %s)", save_path or "default")
        else:
            logger.warning("Torrent add returned HTTP %s: %s", response.status_code, response.text)

    async def list_files(self, info_hash: str) -> list[DaemonFileModel]:
        """Return the files of a torrent in daemon index order."""

        response = await self._request("GET", "/api/v2/torrents/files", params={"hash": info_hash})
        if response.status_code != 200:
            logger.warning("File listing for %s returned HTTP %s", info_hash, response.status_code)
            return []
        try:
            payload = response.json()
        except ValueError:
            return []

        files: list[DaemonFileModel] = []
        for position, item in enumerate(payload if isinstance(payload, list) else []):
            if not isinstance(item, dict):
                continue
            item.setdefault("index", position)
            try:
                files.append(DaemonFileModel.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed file entry %r", item)
        return files

    async def _set_priority(self, info_hash: str, file_index: int, priority: int) -> None:
        response = await self._request(
            "POST",
            "/api/v2/torrents/filePrio",
            data={"hash": info_hash, "id": str(file_index), "priority": str(priority)},
        )
        if response.status_code != 200:
            raise DaemonError(
                f"Setting priority {priority} on file {file_index} returned HTTP {response.status_code}"
            )

    async def set_file_priority(
        self,
        info_hash: str,
        target_index: int,
        files: list[DaemonFileModel] | None = None,
    ) -> None:
        """Raise one file to maximum priority and lower its siblings.

        All updates run concurrently and are awaited together. Failures on
        siblings are logged; a failure on the target file is raised.
        """

        if files is None:
            files = await self.list_files(info_hash)
        siblings = [entry.index for entry in files if entry.index != target_index]

        results = await asyncio.gather(
            self._set_priority(info_hash, target_index, self.MAX_PRIORITY),
            *(self._set_priority(info_hash, index, self.LOW_PRIORITY) for index in siblings),
            return_exceptions=True,
        )
        target_result, sibling_results = results[0], results[1:]
        for index, result in zip(siblings, sibling_results):
            if isinstance(result, BaseException):
                logger.warning("Lowering priority of file %s in %s failed: %s", index, info_hash, result)
        if isinstance(target_result, BaseException):
            raise target_result
        logger.info(
            "Prioritised file %s of %s (%d siblings lowered)", target_index, info_hash[:8], len(siblings)
        )

    async def transfer_stats(self) -> TransferStats | None:
        """Return global transfer statistics, or None when they cannot be read."""

        try:
            info = await self._request("GET", "/api/v2/transfer/info")
            maindata = await self._request("GET", "/api/v2/sync/maindata")
            if info.status_code != 200:
                return None
            transfer = info.json()
            server_state = maindata.json().get("server_state", {}) if maindata.status_code == 200 else {}
            return TransferStats(
                download_rate=transfer.get("dl_info_speed", 0),
                upload_rate=transfer.get("up_info_speed", 0),
                free_space=server_state.get("free_space_on_disk"),
            )
        except (DaemonError, ValueError, AttributeError) as exc:
            logger.debug("Transfer stats unavailable: %s", exc)
            return None
