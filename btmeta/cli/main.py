"""Command line interface for btmeta.

Provides:
- ``decode``: print a bencoded value as JSON
- ``info``: show a torrent's metadata and info hash
- ``peers``: announce to the tracker and list the returned peers
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from btmeta.config.config import init_config
from btmeta.core.bencode import decode
from btmeta.core.torrent import (
    TorrentParser,
    compute_info_hash,
    piece_hashes,
    total_length,
)
from btmeta.discovery.tracker import AsyncTrackerClient
from btmeta.models import LogLevel, TorrentInfo
from btmeta.utils.exceptions import BtMetaError, ConfigurationError

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def to_jsonable(value: Any) -> Any:
    """Convert a decoded bencode value into something ``json.dumps`` accepts.

    Byte strings become text when they are valid UTF-8 and hex otherwise.
    """
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {to_jsonable(key): to_jsonable(item) for key, item in value.items()}
    return value


def _torrent_summary(torrent: TorrentInfo) -> dict[str, Any]:
    return {
        "tracker": torrent.announce,
        "name": torrent.name,
        "length": total_length(torrent),
        "info_hash": compute_info_hash(torrent).hex(),
        "piece_length": torrent.piece_length,
        "piece_hashes": [digest.hex() for digest in piece_hashes(torrent)],
    }


def _fail(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    raise click.exceptions.Exit(1)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.pass_context
def cli(ctx, config, verbose):
    """btmeta - BitTorrent metainfo and tracker tool."""
    ctx.ensure_object(dict)
    try:
        config_manager = init_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    observability = config_manager.config.observability
    if verbose >= 2:
        observability.log_level = LogLevel.DEBUG
    elif verbose == 1:
        observability.log_level = LogLevel.INFO
    elif config is None:
        # stay quiet unless asked; command output goes to stdout
        observability.log_level = LogLevel.WARNING
    config_manager.setup_logging()

    ctx.obj["config_manager"] = config_manager


@cli.command("decode")
@click.argument("encoded")
def decode_cmd(encoded):
    """Decode a bencoded value and print it as JSON."""
    try:
        value = decode(encoded.encode("utf-8"))
    except BtMetaError as e:
        _fail(str(e))
    click.echo(json.dumps(to_jsonable(value)))


@cli.command("info")
@click.argument("torrent_file", type=click.Path(dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
def info_cmd(torrent_file, as_json):
    """Show metadata and info hash of a torrent file."""
    try:
        torrent = TorrentParser().parse(torrent_file)
    except BtMetaError as e:
        _fail(str(e))

    summary = _torrent_summary(torrent)
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    table = Table(title=summary["name"], show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Tracker URL", summary["tracker"])
    table.add_row("Length", str(summary["length"]))
    table.add_row("Info Hash", summary["info_hash"])
    table.add_row("Piece Length", str(summary["piece_length"]))
    table.add_row("Piece Hashes", "\n".join(summary["piece_hashes"]))
    console.print(table)


async def _announce(torrent: TorrentInfo, port: int | None) -> list[str]:
    async with AsyncTrackerClient() as tracker:
        response = await tracker.announce(torrent, port=port)
    return [str(peer) for peer in response.peers]


@cli.command("peers")
@click.argument("torrent_file", type=click.Path(dir_okay=False))
@click.option(
    "--port",
    type=click.IntRange(0, 65535),
    help="Port reported to the tracker",
)
def peers_cmd(torrent_file, port):
    """Announce to the tracker and print the returned peers."""
    try:
        torrent = TorrentParser().parse(torrent_file)
        peers = asyncio.run(_announce(torrent, port))
    except BtMetaError as e:
        logger.debug("Announce failed", exc_info=True)
        _fail(str(e))

    for peer in peers:
        click.echo(peer)


def main() -> None:
    """Console script entry point."""
    cli(obj={})
