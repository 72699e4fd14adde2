"""HTTP plumbing shared by the Torrentarr CLI commands."""
from __future__ import annotations

from typing import Any

import httpx

USER_AGENT = "torrentarr-cli"


class ApiError(Exception):
    """Error response returned by the stream API."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def create_client(base_url: str, *, timeout: float = 10.0, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Build a client rooted at the stream API, tolerating a trailing slash on ``base_url``."""

    return httpx.Client(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        transport=transport,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
    )


def error_detail(response: httpx.Response) -> str:
    """Extract FastAPI's ``detail`` field, falling back to the raw body."""

    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and "detail" in payload:
        return str(payload["detail"])
    return response.text


def read_json(response: httpx.Response) -> Any:
    if response.is_error:
        raise ApiError(response.status_code, error_detail(response))
    return response.json()
