"""Core BitTorrent metadata handling.

This package contains:
- Bencoding (encoding/decoding)
- Torrent file parsing and info-hash computation
"""

from __future__ import annotations

from btmeta.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
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

__all__ = [
    # Bencoding
    "BencodeDecoder",
    "BencodeEncoder",
    # Torrent
    "TorrentParser",
    "compute_info_hash",
    "decode",
    "decode_prefix",
    "encode",
    "parse",
    "piece_hashes",
    "total_length",
]
