"""Shared fixtures and fakes for the Torrentarr test suite."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.resolver.bencode import compute_info_hash, encode  # noqa: E402

QBIT_HOST = "http://qbit.test"
SOURCE_TEMPLATE = "http://tracker.test/torrent/{catalog_id}.{api_key}"
STREAM_API_URL = "http://stream.test/api/stream"


def make_torrent(name: str, files: list[tuple[str, int]] | None = None, length: int = 1024) -> bytes:
    """Build a minimal torrent file, multi-file when ``files`` is given."""

    info: dict[str, Any] = {"name": name, "piece length": 16384, "pieces": b"\x00" * 20}
    if files is None:
        info["length"] = length
    else:
        info["files"] = [{"length": size, "path": path.split("/")} for path, size in files]
    return encode({"announce": "http://tracker.test/announce", "info": info})


class FakeDaemon:
    """In-memory stand-in for qBittorrent, the torrent source and the streaming API."""

    def __init__(self) -> None:
        self.torrents: dict[str, dict[str, Any]] = {}
        self.files: dict[str, list[dict[str, Any]]] = {}
        self.torrent_files: dict[str, bytes] = {}
        self.on_add: dict[str, dict[str, Any]] = {}
        self.stream_urls: dict[str, str] = {}
        self.priorities: list[tuple[str, int, int]] = []
        self.added: list[dict[str, list[str]]] = []
        self.requests: list[httpx.Request] = []
        self.login_ok = True
        self.logins = 0
        self.reject_sessions = 0

    def daemon_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == "qbit.test"]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "qbit.test":
            return self._daemon(request)
        if host == "tracker.test":
            catalog_id = request.url.path.rsplit("/", 1)[-1].split(".", 1)[0]
            payload = self.torrent_files.get(catalog_id)
            if payload is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, content=payload)
        if host == "stream.test":
            path = json.loads(request.content)["path"]
            url = self.stream_urls.get(path)
            return httpx.Response(200, json={"url": url} if url else {})
        return httpx.Response(404)

    def _daemon(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        form = parse_qs(request.content.decode()) if request.method == "POST" else {}
        if path == "/api/v2/auth/login":
            self.logins += 1
            return httpx.Response(200, text="Ok." if self.login_ok else "Fails.")
        if self.reject_sessions:
            self.reject_sessions -= 1
            return httpx.Response(403, text="Forbidden")
        if path == "/api/v2/torrents/info":
            wanted = request.url.params.get("hashes", "").split("|")
            return httpx.Response(200, json=[self.torrents[h] for h in wanted if h in self.torrents])
        if path == "/api/v2/torrents/add":
            self.added.append(form)
            state = self.on_add.get(form["urls"][0])
            if state is not None:
                self.torrents[state["hash"]] = state
            return httpx.Response(200, text="Ok.")
        if path == "/api/v2/torrents/files":
            return httpx.Response(200, json=self.files.get(request.url.params["hash"], []))
        if path == "/api/v2/torrents/filePrio":
            self.priorities.append((form["hash"][0], int(form["id"][0]), int(form["priority"][0])))
            return httpx.Response(200)
        if path == "/api/v2/transfer/info":
            return httpx.Response(200, json={"dl_info_speed": 2048, "up_info_speed": 512})
        if path == "/api/v2/sync/maindata":
            return httpx.Response(200, json={"server_state": {"free_space_on_disk": 10_000}})
        return httpx.Response(404)


@pytest.fixture()
def fake_daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture()
def movie_torrent() -> tuple[bytes, str]:
    payload = make_torrent("movie.mkv", length=4096)
    return payload, compute_info_hash(payload)
