"""Command line interface for the Torrentarr stream API."""
from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

import httpx
import typer

from ..resolver.bencode import parse_torrent
from ..resolver.errors import MalformedBencodeError
from .client import ApiError, create_client, read_json


DEFAULT_API_BASE = "http://localhost:5000"

app = typer.Typer(help="Interact with the Torrentarr stream API.")
store_app = typer.Typer(help="Inspect and maintain the torrent store.")
app.add_typer(store_app, name="store")


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the stream API service.",
        show_default=True,
        envvar="TORRENTARR_API_BASE",
    )


def _addon_key_option() -> typer.Option:
    return typer.Option(
        ...,
        "--addon-key",
        help="Addon key configured on the stream API.",
        envvar="TORRENTARR_ADDON_KEY",
    )


@contextmanager
def _api(api_base: str) -> Iterator[httpx.Client]:
    """Open a client and turn transport or API failures into a clean exit."""

    try:
        with create_client(api_base) as client:
            yield client
    except httpx.TransportError as exc:
        typer.echo(f"Could not reach the stream API at {api_base}: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except ApiError as exc:
        typer.echo(f"Stream API error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _echo_json(response: httpx.Response) -> None:
    typer.echo(json.dumps(read_json(response), indent=2, ensure_ascii=False))


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with _api(api_base) as client:
        response = client.get("/health")
        _echo_json(response)


@app.command()
def cached(
    catalog_ids: List[str] = typer.Argument(..., help="Catalog identifiers to check."),
    addon_key: str = _addon_key_option(),
    api_base: str = _api_base_option(),
) -> None:
    """Report which catalog identifiers are already present in the daemon."""

    with _api(api_base) as client:
        response = client.get(f"/{addon_key}/cached", params={"ids": ",".join(catalog_ids)})
        _echo_json(response)


@app.command("info-hash")
def info_hash(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Torrent file to inspect."),
) -> None:
    """Print the info-hash and summary of a local torrent file."""

    try:
        metadata = parse_torrent(path.read_bytes())
    except MalformedBencodeError as exc:
        typer.echo(f"Invalid torrent file: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        json.dumps(
            {
                "info_hash": metadata.info_hash,
                "name": metadata.name,
                "total_size": metadata.total_size,
                "file_count": metadata.file_count,
            },
            indent=2,
            ensure_ascii=False,
        )
    )


@store_app.command("stats")
def store_stats(
    addon_key: str = _addon_key_option(),
    api_base: str = _api_base_option(),
) -> None:
    """Display aggregate counts for the torrent store."""

    with _api(api_base) as client:
        response = client.get(f"/{addon_key}/store/stats")
        _echo_json(response)


@store_app.command("show")
def store_show(
    catalog_id: str = typer.Argument(..., help="Catalog identifier to look up."),
    addon_key: str = _addon_key_option(),
    api_base: str = _api_base_option(),
) -> None:
    """Show the torrent mapping stored for a catalog identifier."""

    with _api(api_base) as client:
        response = client.get(f"/{addon_key}/store/{catalog_id}")
        if response.status_code == 404:
            typer.echo(f"No torrent stored for {catalog_id}.", err=True)
            raise typer.Exit(code=1)
        _echo_json(response)


@store_app.command("purge")
def store_purge(
    days: int = typer.Option(30, "--days", min=0, help="Remove mappings older than this many days."),
    addon_key: str = _addon_key_option(),
    api_base: str = _api_base_option(),
) -> None:
    """Remove old torrent mappings from the store."""

    with _api(api_base) as client:
        response = client.post(f"/{addon_key}/store/purge", params={"days": days})
        _echo_json(response)
