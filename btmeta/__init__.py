"""btmeta - BitTorrent bencode, metainfo and tracker announce library."""

from __future__ import annotations

__version__ = "0.1.0"

from btmeta.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
    BencodeValue,
    decode,
    decode_prefix,
    encode,
)
from btmeta.core.torrent import (
    TorrentParser,
    compute_info_hash,
    parse,
    piece_hashes,
    total_length,
)
from btmeta.discovery.tracker import (
    AsyncTrackerClient,
    build_announce_url,
    decode_tracker_response,
    parse_tracker_response,
)
from btmeta.models import PeerInfo, TorrentInfo, TrackerResponse
from btmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BtMetaError,
    TorrentError,
    TrackerError,
    TrackerFailureError,
    TrackerProtocolError,
)

__all__ = [
    "AsyncTrackerClient",
    "BencodeDecodeError",
    "BencodeDecoder",
    "BencodeEncodeError",
    "BencodeEncoder",
    "BencodeValue",
    "BtMetaError",
    "PeerInfo",
    "TorrentError",
    "TorrentInfo",
    "TorrentParser",
    "TrackerError",
    "TrackerFailureError",
    "TrackerProtocolError",
    "TrackerResponse",
    "__version__",
    "build_announce_url",
    "compute_info_hash",
    "decode",
    "decode_prefix",
    "decode_tracker_response",
    "encode",
    "parse",
    "parse_tracker_response",
    "piece_hashes",
    "total_length",
]
