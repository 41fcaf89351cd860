"""Peer discovery through HTTP trackers."""

from __future__ import annotations

from btmeta.discovery.tracker import (
    AiohttpClient,
    AsyncTrackerClient,
    HttpClient,
    build_announce_url,
    decode_tracker_response,
    generate_peer_id,
    parse_tracker_response,
)

__all__ = [
    "AiohttpClient",
    "AsyncTrackerClient",
    "HttpClient",
    "build_announce_url",
    "decode_tracker_response",
    "generate_peer_id",
    "parse_tracker_response",
]
