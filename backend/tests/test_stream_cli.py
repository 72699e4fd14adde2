"""Tests for the Typer-based Torrentarr CLI."""
from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from conftest import QBIT_HOST, FakeDaemon, make_torrent

from backend.resolver.bencode import compute_info_hash
from backend.stream_api import create_app
from backend.stream_api.schemas import TorrentRecord
from backend.stream_api.settings import StreamSettings
from backend.stream_cli import client as client_module

cli_app_module = importlib.import_module("backend.stream_cli.app")
cli_app = cli_app_module.app

ADDON_KEY = "cli-key"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(tmp_path: Path, fake_daemon: FakeDaemon) -> Iterator[TestClient]:
    """Provide a TestClient and patch the CLI HTTP client factory."""

    settings = StreamSettings(
        addon_key=ADDON_KEY,
        qbit_host=QBIT_HOST,
        daemon_connect_attempts=1,
        store_path=str(tmp_path / "torrents.json"),
    )
    app = create_app(settings=settings, transport=fake_daemon.transport())
    test_client = TestClient(app)

    original_factory = client_module.create_client
    original_app_factory = cli_app_module.create_client

    def _factory(base_url: str, *, timeout: float = 10.0, transport: Any = None):  # type: ignore[override]
        return test_client

    client_module.create_client = _factory  # type: ignore[assignment]
    cli_app_module.create_client = _factory  # type: ignore[assignment]

    yield test_client

    client_module.create_client = original_factory  # type: ignore[assignment]
    cli_app_module.create_client = original_app_factory  # type: ignore[assignment]


def _seed(cli_client: TestClient) -> None:
    store = cli_client.app.state.app_state.store
    store.put("12345", TorrentRecord(catalog_id="12345", info_hash="a" * 40, name="movie.mkv"))
    store.put("777", TorrentRecord(catalog_id="777", info_hash="b" * 40, kind="series"))


def test_cli_health(cli_client: TestClient, runner: CliRunner) -> None:
    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["status"] == "ok"
    assert payload["daemon"]["status"] == "ok"


def test_cli_store_stats_and_show(cli_client: TestClient, runner: CliRunner) -> None:
    _seed(cli_client)

    stats = runner.invoke(cli_app, ["store", "stats", "--addon-key", ADDON_KEY])
    assert stats.exit_code == 0, stats.stdout
    assert json.loads(stats.stdout)["total"] == 2

    show = runner.invoke(cli_app, ["store", "show", "12345", "--addon-key", ADDON_KEY])
    assert show.exit_code == 0, show.stdout
    assert json.loads(show.stdout)["name"] == "movie.mkv"

    missing = runner.invoke(cli_app, ["store", "show", "missing", "--addon-key", ADDON_KEY])
    assert missing.exit_code == 1


def test_cli_store_purge(cli_client: TestClient, runner: CliRunner) -> None:
    _seed(cli_client)

    result = runner.invoke(
        cli_app, ["store", "purge", "--days", "0"], env={"TORRENTARR_ADDON_KEY": ADDON_KEY}
    )

    assert result.exit_code == 0, result.stdout
    assert json.loads(result.stdout) == {"removed": 2, "days": 0}


def test_cli_cached(cli_client: TestClient, runner: CliRunner, fake_daemon: FakeDaemon) -> None:
    _seed(cli_client)
    fake_daemon.torrents["b" * 40] = {"hash": "b" * 40}

    result = runner.invoke(cli_app, ["cached", "12345", "777", "--addon-key", ADDON_KEY])

    assert result.exit_code == 0, result.stdout
    assert json.loads(result.stdout)["cached"] == {"12345": False, "777": True}


def test_cli_info_hash(tmp_path: Path, runner: CliRunner) -> None:
    payload = make_torrent("Show", files=[("Show/Show.S01E01.mkv", 100), ("Show/Show.S01E02.mkv", 50)])
    torrent_path = tmp_path / "show.torrent"
    torrent_path.write_bytes(payload)

    result = runner.invoke(cli_app, ["info-hash", str(torrent_path)])

    assert result.exit_code == 0, result.stdout
    assert json.loads(result.stdout) == {
        "info_hash": compute_info_hash(payload),
        "name": "Show",
        "total_size": 150,
        "file_count": 2,
    }


def test_cli_info_hash_rejects_invalid_file(tmp_path: Path, runner: CliRunner) -> None:
    torrent_path = tmp_path / "broken.torrent"
    torrent_path.write_bytes(b"not bencode")

    result = runner.invoke(cli_app, ["info-hash", str(torrent_path)])

    assert result.exit_code == 1


def test_cli_reports_api_error_detail(cli_client: TestClient, runner: CliRunner) -> None:
    result = runner.invoke(cli_app, ["store", "stats", "--addon-key", "wrong"])

    assert result.exit_code == 1
    assert "HTTP 403: invalid_addon_key" in result.output


def test_cli_reports_unreachable_api(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(
        cli_app_module,
        "create_client",
        lambda base_url, **_: client_module.create_client(base_url, transport=httpx.MockTransport(_refuse)),
    )

    result = runner.invoke(cli_app, ["health", "--api-base", "http://api.invalid"])

    assert result.exit_code == 2
    assert "Could not reach the stream API at http://api.invalid" in result.output


def test_create_client_sets_headers_and_strips_trailing_slash() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "ok"})

    with client_module.create_client("http://api.test/", transport=httpx.MockTransport(_handler)) as client:
        assert client_module.read_json(client.get("/health")) == {"status": "ok"}

    assert str(seen[0].url) == "http://api.test/health"
    assert seen[0].headers["user-agent"] == client_module.USER_AGENT


@pytest.mark.parametrize(
    "response, detail",
    [
        (httpx.Response(404, json={"detail": "No stream found"}), "No stream found"),
        (httpx.Response(502, text="bad gateway"), "bad gateway"),
        (httpx.Response(500, json=["unexpected"]), '["unexpected"]'),
    ],
)
def test_read_json_raises_api_error(response: httpx.Response, detail: str) -> None:
    with pytest.raises(client_module.ApiError) as excinfo:
        client_module.read_json(response)

    assert excinfo.value.status_code == response.status_code
    assert excinfo.value.detail == detail
