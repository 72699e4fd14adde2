"""Tests for the polling coordinator."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable

import pytest

from conftest import QBIT_HOST, SOURCE_TEMPLATE, STREAM_API_URL, FakeDaemon

from backend.resolver.errors import NotReadyError
from backend.stream_api.services import (
    DaemonConnection,
    QBittorrentClient,
    StreamCoordinator,
    StreamingService,
    TorrentResolver,
    TorrentSource,
)
from backend.stream_api.stores import DeliveryCache, JsonTorrentStore

HASH = "0123456789abcdef0123456789abcdef01234567"
Sleep = Callable[[float], Awaitable[None]]


class RecordingSleep:
    def __init__(self, on_sleep: Callable[[int], None] | None = None) -> None:
        self.delays: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._on_sleep is not None:
            self._on_sleep(len(self.delays))


def _coordinator(
    daemon: FakeDaemon,
    tmp_path: Path,
    *,
    sleep: Sleep,
    max_retries: int = 3,
    retry_delay: float = 1.5,
    resolve_timeout: float | None = None,
) -> StreamCoordinator:
    transport = daemon.transport()
    connection = DaemonConnection(
        lambda: QBittorrentClient(QBIT_HOST, "admin", "secret", transport=transport),
        sleep=sleep,
    )
    resolver = TorrentResolver(
        JsonTorrentStore(tmp_path / "torrents.json"),
        connection,
        TorrentSource(SOURCE_TEMPLATE, "key", transport=transport),
        movies_path="/downloads/movies",
        series_path="/downloads/series",
        settle_delay=0,
        sleep=sleep,
    )
    return StreamCoordinator(
        resolver,
        connection,
        StreamingService(STREAM_API_URL, "token", transport=transport),
        DeliveryCache(),
        series_path="/downloads/series",
        max_retries=max_retries,
        retry_delay=retry_delay,
        cache_ttl=60,
        resolve_timeout=resolve_timeout,
        sleep=sleep,
    )


def _info_calls(daemon: FakeDaemon) -> int:
    return sum(1 for request in daemon.daemon_requests() if request.url.path == "/api/v2/torrents/info")


@pytest.mark.asyncio
async def test_movie_poll_returns_stream_url(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "content_path": "/data/movie.mkv"}
    fake_daemon.stream_urls["/data/movie.mkv"] = "http://cdn/x.mkv"
    sleep = RecordingSleep()

    url = await _coordinator(fake_daemon, tmp_path, sleep=sleep).poll_movie(HASH)

    assert url == "http://cdn/x.mkv"
    assert sleep.delays == []
    stream_call = [r for r in fake_daemon.requests if r.url.host == "stream.test"][0]
    assert stream_call.headers["Authorization"] == "token"


@pytest.mark.asyncio
async def test_retry_budget_is_exact(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "content_path": ""}
    sleep = RecordingSleep()
    coordinator = _coordinator(fake_daemon, tmp_path, sleep=sleep, max_retries=4, retry_delay=1.5)

    with pytest.raises(NotReadyError):
        await coordinator.poll_movie(HASH)

    assert _info_calls(fake_daemon) == 4
    assert sleep.delays == [1.5, 1.5, 1.5]


@pytest.mark.asyncio
async def test_stream_url_found_on_later_attempt(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "content_path": "/data/movie.mkv"}

    def make_ready(count: int) -> None:
        if count == 2:
            fake_daemon.stream_urls["/data/movie.mkv"] = "http://cdn/x.mkv"

    sleep = RecordingSleep(make_ready)
    coordinator = _coordinator(fake_daemon, tmp_path, sleep=sleep, max_retries=5)

    assert await coordinator.poll_movie(HASH) == "http://cdn/x.mkv"
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_episode_poll_prioritises_matching_file(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "name": "Show"}
    fake_daemon.files[HASH] = [{"name": "Show/Show.S1E2.mkv"}, {"name": "Show/Show.S1E3.mkv"}]
    fake_daemon.stream_urls["/downloads/series/Show/Show.S1E2.mkv"] = "http://cdn/s01e02.mkv"

    url = await _coordinator(fake_daemon, tmp_path, sleep=RecordingSleep()).poll_episode(HASH, "1", "2")

    assert url == "http://cdn/s01e02.mkv"
    assert sorted(fake_daemon.priorities) == [(HASH, 0, 7), (HASH, 1, 1)]


@pytest.mark.asyncio
async def test_missing_episode_exhausts_budget(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "name": "Show"}
    fake_daemon.files[HASH] = [{"name": "Show/Show.S1E3.mkv"}, {"name": "Show/Show.S1E4.mkv"}]
    sleep = RecordingSleep()

    with pytest.raises(NotReadyError):
        await _coordinator(fake_daemon, tmp_path, sleep=sleep, max_retries=2).poll_episode(HASH, "1", "2")

    assert fake_daemon.priorities == []
    assert len(sleep.delays) == 1


@pytest.mark.asyncio
async def test_deliver_movie_caches_url(
    fake_daemon: FakeDaemon, tmp_path: Path, movie_torrent: tuple[bytes, str]
) -> None:
    payload, info_hash = movie_torrent
    fake_daemon.torrent_files["12345"] = payload
    fake_daemon.on_add["http://tracker.test/torrent/12345.key"] = {
        "hash": info_hash,
        "content_path": "/data/movie.mkv",
    }
    fake_daemon.stream_urls["/data/movie.mkv"] = "http://cdn/x.mkv"
    coordinator = _coordinator(fake_daemon, tmp_path, sleep=RecordingSleep())

    assert await coordinator.deliver_movie("12345") == "http://cdn/x.mkv"
    seen = len(fake_daemon.requests)

    assert await coordinator.deliver_movie("12345") == "http://cdn/x.mkv"
    assert len(fake_daemon.requests) == seen
    assert coordinator.cached_url("movie_12345") == "http://cdn/x.mkv"


@pytest.mark.asyncio
async def test_resolve_timeout_reports_not_ready(fake_daemon: FakeDaemon, tmp_path: Path) -> None:
    fake_daemon.torrents[HASH] = {"hash": HASH, "content_path": ""}
    fake_daemon.torrent_files["12345"] = b"d4:infod6:lengthi1e4:name1:xee"
    coordinator = _coordinator(
        fake_daemon,
        tmp_path,
        sleep=asyncio.sleep,
        max_retries=50,
        retry_delay=1.0,
        resolve_timeout=0.05,
    )

    with pytest.raises(NotReadyError):
        await coordinator.deliver_movie("12345")
    assert coordinator.cached_url("movie_12345") is None
