"""Async HTTP tracker communication for BitTorrent client.

This module builds announce URLs from a parsed torrent, performs the single
HTTP exchange through an injectable client, and decodes the compact peer
list in the tracker's reply.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any, Protocol

import aiohttp
from yarl import URL

from btmeta.config.config import get_network_config
from btmeta.core.bencode import decode
from btmeta.core.torrent import compute_info_hash, total_length
from btmeta.models import AnnounceEvent, PeerInfo, TorrentInfo, TrackerResponse
from btmeta.utils.exceptions import (
    BencodeDecodeError,
    TrackerError,
    TrackerFailureError,
    TrackerProtocolError,
)
from btmeta.utils.logging_config import LoggingContext

logger = logging.getLogger(__name__)

PEER_ID_LENGTH = 20
COMPACT_PEER_LENGTH = 6


class HttpClient(Protocol):
    """Transport used by the tracker client."""

    async def get(self, url: str) -> tuple[int, bytes]:
        """GET ``url`` and return ``(status, body)``.

        Raises:
            TrackerError: If the tracker cannot be reached

        """
        ...


class AiohttpClient:
    """HttpClient backed by an aiohttp session."""

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize the HTTP client.

        Args:
            timeout: Total request timeout in seconds (default from config)
            user_agent: User-Agent header (default from config)
            session: Existing session to use; it is not closed by :meth:`stop`

        """
        network = get_network_config()
        self.timeout = timeout if timeout is not None else network.tracker_timeout
        self.user_agent = user_agent or network.user_agent
        self.session = session
        self._owns_session = session is None

    async def start(self) -> None:
        """Create the HTTP session if one was not supplied."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> AiohttpClient:
        """Start on context entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop on context exit."""
        await self.stop()

    async def get(self, url: str) -> tuple[int, bytes]:
        """Make async HTTP GET request to tracker."""
        if self.session is None:
            msg = "HTTP session not started"
            raise TrackerError(msg)
        try:
            # the query is already percent-encoded; keep it byte for byte
            async with self.session.get(URL(url, encoded=True)) as response:
                return response.status, await response.read()
        except asyncio.TimeoutError as e:
            msg = f"Tracker request timed out after {self.timeout}s"
            raise TrackerError(msg, {"url": url}) from e
        except aiohttp.ClientError as e:
            msg = f"Network error: {e}"
            raise TrackerError(msg, {"url": url}) from e


def generate_peer_id(prefix: str | bytes | None = None) -> bytes:
    """Generate a 20-byte peer id: ``prefix`` followed by random bytes."""
    if prefix is None:
        prefix = get_network_config().peer_id_prefix
    raw = prefix.encode("utf-8") if isinstance(prefix, str) else prefix
    if len(raw) > PEER_ID_LENGTH:
        msg = f"Peer id prefix is longer than {PEER_ID_LENGTH} bytes"
        raise ValueError(msg)
    return raw + secrets.token_bytes(PEER_ID_LENGTH - len(raw))


def percent_encode(data: bytes) -> str:
    """Escape every byte as ``%XX``; binary ids are never treated as text."""
    return "".join(f"%{byte:02X}" for byte in data)


def build_announce_url(
    torrent: TorrentInfo,
    peer_id: bytes | str,
    port: int,
    uploaded: int = 0,
    downloaded: int = 0,
    left: int | None = None,
    event: AnnounceEvent | str | None = None,
) -> str:
    """Build the complete announce URL with all required parameters.

    Args:
        torrent: Parsed torrent
        peer_id: Client's 20-byte peer ID
        port: Client listening port
        uploaded: Bytes uploaded
        downloaded: Bytes downloaded
        left: Bytes left to download (defaults to total length minus downloaded)
        event: Optional announce event

    Returns:
        Announce URL requesting the compact peer list

    Raises:
        ValueError: If a parameter is out of range

    """
    raw_peer_id = peer_id.encode("utf-8") if isinstance(peer_id, str) else peer_id
    if len(raw_peer_id) != PEER_ID_LENGTH:
        msg = f"peer_id must be {PEER_ID_LENGTH} bytes, got {len(raw_peer_id)}"
        raise ValueError(msg)
    if not 0 <= port <= 65535:
        msg = f"Invalid port: {port}"
        raise ValueError(msg)
    if left is None:
        left = max(0, total_length(torrent) - downloaded)
    for name, value in (("uploaded", uploaded), ("downloaded", downloaded), ("left", left)):
        if value < 0:
            msg = f"{name} must not be negative, got {value}"
            raise ValueError(msg)

    params = [
        ("info_hash", percent_encode(compute_info_hash(torrent))),
        ("peer_id", percent_encode(raw_peer_id)),
        ("port", str(port)),
        ("uploaded", str(uploaded)),
        ("downloaded", str(downloaded)),
        ("left", str(left)),
        ("compact", "1"),  # Request compact peer format
    ]
    if event is not None:
        params.append(("event", AnnounceEvent(event).value))

    separator = "&" if "?" in torrent.announce else "?"
    query_string = "&".join(f"{key}={value}" for key, value in params)
    return f"{torrent.announce}{separator}{query_string}"


def _decode_response_dict(response_data: bytes) -> dict[bytes, Any]:
    try:
        decoded = decode(response_data)
    except BencodeDecodeError as e:
        msg = f"Tracker response is not valid bencode: {e.message}"
        raise TrackerProtocolError(msg, e.details) from e

    if not isinstance(decoded, dict):
        msg = f"Tracker response must be a dictionary, got {type(decoded).__name__}"
        raise TrackerProtocolError(msg)

    if b"failure reason" in decoded:
        reason = decoded[b"failure reason"]
        if isinstance(reason, bytes):
            reason = reason.decode("utf-8", errors="replace")
        raise TrackerFailureError(str(reason))

    return decoded


def parse_compact_peers(peers_data: bytes) -> list[PeerInfo]:
    """Parse compact peer format.

    In compact format, peers are encoded as 6 bytes per peer:
    - 4 bytes: IP address (network byte order)
    - 2 bytes: port (network byte order)

    Raises:
        TrackerProtocolError: If the data is not a whole number of records

    """
    if len(peers_data) % COMPACT_PEER_LENGTH != 0:
        msg = (
            f"Invalid compact peer data length: {len(peers_data)} bytes "
            f"(should be multiple of {COMPACT_PEER_LENGTH})"
        )
        raise TrackerProtocolError(msg)

    peers = []
    for start in range(0, len(peers_data), COMPACT_PEER_LENGTH):
        record = peers_data[start : start + COMPACT_PEER_LENGTH]
        ip = ".".join(str(b) for b in record[0:4])
        port = int.from_bytes(record[4:6], byteorder="big")
        peers.append(PeerInfo(ip=ip, port=port))
    return peers


def _peers_from(decoded: dict[bytes, Any]) -> list[PeerInfo]:
    if b"peers" not in decoded:
        msg = "Missing peers in tracker response"
        raise TrackerProtocolError(msg)
    peers_data = decoded[b"peers"]
    if not isinstance(peers_data, bytes):
        msg = (
            "Tracker returned non-compact peers "
            f"({type(peers_data).__name__}); only the compact form is supported"
        )
        raise TrackerProtocolError(msg)
    return parse_compact_peers(peers_data)


def decode_tracker_response(response_data: bytes) -> list[PeerInfo]:
    """Decode an announce response body into its peers, in response order.

    Raises:
        TrackerProtocolError: If the body is not a compact peer response
        TrackerFailureError: If the tracker reported a failure reason

    """
    return _peers_from(_decode_response_dict(response_data))


def parse_tracker_response(response_data: bytes) -> TrackerResponse:
    """Decode an announce response body with its optional statistics."""
    decoded = _decode_response_dict(response_data)
    peers = _peers_from(decoded)

    def get_int(key: bytes) -> int | None:
        value = decoded.get(key)
        return value if isinstance(value, int) and value >= 0 else None

    tracker_id = decoded.get(b"tracker id")
    warning = decoded.get(b"warning message")
    if isinstance(warning, bytes):
        logger.warning("Tracker warning: %s", warning.decode("utf-8", errors="replace"))

    return TrackerResponse(
        peers=peers,
        interval=get_int(b"interval"),
        min_interval=get_int(b"min interval"),
        complete=get_int(b"complete"),
        incomplete=get_int(b"incomplete"),
        tracker_id=tracker_id if isinstance(tracker_id, bytes) else None,
        warning_message=warning.decode("utf-8", errors="replace")
        if isinstance(warning, bytes)
        else None,
    )


class AsyncTrackerClient:
    """Async client for announcing to HTTP trackers.

    Each announce performs exactly one HTTP request; nothing is retried or
    scheduled in the background.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        peer_id: bytes | None = None,
    ):
        """Initialize the tracker client.

        Args:
            http_client: Transport to use; an AiohttpClient is created and
                owned by this client when omitted
            peer_id: 20-byte peer id; generated from the configured prefix
                when omitted

        """
        self._owned_http: AiohttpClient | None = None
        if http_client is None:
            self._owned_http = AiohttpClient()
            http_client = self._owned_http
        self.http_client = http_client
        self.peer_id = peer_id if peer_id is not None else generate_peer_id()

    async def start(self) -> None:
        """Start the owned HTTP client, if any."""
        if self._owned_http is not None:
            await self._owned_http.start()

    async def stop(self) -> None:
        """Stop the owned HTTP client, if any."""
        if self._owned_http is not None:
            await self._owned_http.stop()

    async def __aenter__(self) -> AsyncTrackerClient:
        """Start on context entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop on context exit."""
        await self.stop()

    async def send(self, url: str) -> bytes:
        """Perform the HTTP exchange and return the body.

        Raises:
            TrackerError: If the tracker is unreachable or returns a non-2xx status

        """
        status, body = await self.http_client.get(url)
        if not 200 <= status < 300:
            msg = f"HTTP {status} from tracker"
            raise TrackerError(msg, {"status": status})
        return body

    async def announce(
        self,
        torrent: TorrentInfo,
        port: int | None = None,
        uploaded: int = 0,
        downloaded: int = 0,
        left: int | None = None,
        event: AnnounceEvent | str | None = None,
    ) -> TrackerResponse:
        """Announce to the tracker and get the peer list.

        Args:
            torrent: Parsed torrent
            port: Port the client is listening on (default from config)
            uploaded: Number of bytes uploaded
            downloaded: Number of bytes downloaded
            left: Number of bytes left (defaults to total length minus downloaded)
            event: Optional announce event

        Returns:
            TrackerResponse with the peers in tracker order

        Raises:
            TrackerError: If the tracker is unreachable
            TrackerProtocolError: If the response is not a compact peer list

        """
        if port is None:
            port = get_network_config().listen_port

        url = build_announce_url(
            torrent,
            self.peer_id,
            port,
            uploaded,
            downloaded,
            left,
            event,
        )
        logger.debug("Announcing to %s", url)

        with LoggingContext("announce", logger, tracker=torrent.announce):
            body = await self.send(url)
            response = parse_tracker_response(body)

        logger.info("Tracker %s returned %d peers", torrent.announce, len(response.peers))
        return response
