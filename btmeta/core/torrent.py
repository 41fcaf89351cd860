"""Torrent file parsing for BitTorrent client.

This module projects a decoded metainfo dictionary onto typed models and
computes the info hash as required by the BitTorrent protocol.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from btmeta.core.bencode import decode, encode
from btmeta.models import (
    PIECE_HASH_LENGTH,
    FileInfo,
    InfoDict,
    MultiFileLayout,
    SingleFileLayout,
    TorrentInfo,
)
from btmeta.utils.exceptions import TorrentError

logger = logging.getLogger(__name__)


def _field_name(key: bytes) -> str:
    return key.decode("ascii", errors="replace")


def _require(data: dict[bytes, Any], key: bytes, kind: type, where: str) -> Any:
    """Return ``data[key]`` if present and of bencode kind ``kind``."""
    if key not in data:
        msg = f"Missing required key in {where}: {_field_name(key)}"
        raise TorrentError(msg)
    value = data[key]
    if not isinstance(value, kind):
        msg = (
            f"Invalid '{_field_name(key)}' in {where}: expected {kind.__name__}, "
            f"got {type(value).__name__}"
        )
        raise TorrentError(msg)
    return value


def _optional(data: dict[bytes, Any], key: bytes, kind: type, where: str) -> Any:
    if key not in data:
        return None
    return _require(data, key, kind, where)


def _text(value: bytes) -> str:
    """Display text for a byte string; the raw bytes stay in the info dict."""
    return value.decode("utf-8", errors="replace")


class TorrentParser:
    """Parser for BitTorrent torrent files."""

    def parse(self, torrent_path: str | Path) -> TorrentInfo:
        """Parse a local torrent file.

        Args:
            torrent_path: Path to local torrent file

        Returns:
            TorrentInfo object containing parsed torrent data

        Raises:
            TorrentError: If the file is missing or not a valid torrent
            BencodeDecodeError: If the file is not valid bencode

        """
        return self.parse_bytes(self._read_from_file(torrent_path))

    def parse_bytes(self, data: bytes) -> TorrentInfo:
        """Parse raw metainfo bytes.

        Raises:
            TorrentError: If the bencode is well formed but not a valid torrent
            BencodeDecodeError: If ``data`` is not valid bencode

        """
        decoded = decode(data)
        if not isinstance(decoded, dict):
            msg = f"Torrent must be a bencoded dictionary, got {type(decoded).__name__}"
            raise TorrentError(msg)

        try:
            torrent = self._extract_torrent_data(decoded)
        except PydanticValidationError as e:
            msg = f"Invalid torrent metadata: {e}"
            raise TorrentError(msg) from e

        logger.info(
            "Parsed %s torrent %r (%d pieces, %d bytes)",
            "multi-file" if torrent.info.is_multi_file else "single-file",
            torrent.name,
            len(torrent.info.pieces) // PIECE_HASH_LENGTH,
            total_length(torrent),
        )
        return torrent

    def _read_from_file(self, file_path: str | Path) -> bytes:
        """Read torrent data from a local file."""
        path = Path(file_path)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            msg = f"Torrent file not found: {path}"
            raise TorrentError(msg) from e
        except OSError as e:
            msg = f"Failed to read torrent file {path}: {e}"
            raise TorrentError(msg) from e

    def _extract_torrent_data(self, data: dict[bytes, Any]) -> TorrentInfo:
        """Extract and validate the top-level metainfo fields."""
        announce_raw = _require(data, b"announce", bytes, "torrent")
        try:
            announce = announce_raw.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = "Announce URL is not valid UTF-8"
            raise TorrentError(msg) from e

        info = self._extract_info(_require(data, b"info", dict, "torrent"))

        announce_list = None
        tiers = _optional(data, b"announce-list", list, "torrent")
        if tiers is not None:
            announce_list = []
            for tier in tiers:
                if not isinstance(tier, list) or not all(
                    isinstance(url, bytes) for url in tier
                ):
                    msg = "Invalid 'announce-list': tiers must be lists of byte strings"
                    raise TorrentError(msg)
                announce_list.append([_text(url) for url in tier])

        comment = _optional(data, b"comment", bytes, "torrent")
        created_by = _optional(data, b"created by", bytes, "torrent")
        encoding = _optional(data, b"encoding", bytes, "torrent")

        return TorrentInfo(
            announce=announce,
            info=info,
            announce_list=announce_list,
            comment=_text(comment) if comment is not None else None,
            created_by=_text(created_by) if created_by is not None else None,
            creation_date=_optional(data, b"creation date", int, "torrent"),
            encoding=_text(encoding) if encoding is not None else None,
        )

    def _extract_info(self, info: dict[bytes, Any]) -> InfoDict:
        """Extract the info dictionary, keeping the decoded original in ``raw``."""
        name = _require(info, b"name", bytes, "info")
        piece_length = _require(info, b"piece length", int, "info")
        if piece_length <= 0:
            msg = f"Invalid piece length: {piece_length} (must be positive)"
            raise TorrentError(msg)

        pieces = _require(info, b"pieces", bytes, "info")

        private = _optional(info, b"private", int, "info")

        return InfoDict(
            name=_text(name),
            piece_length=piece_length,
            pieces=pieces,
            layout=self._extract_layout(info),
            is_private=bool(private),
            raw=info,
        )

    def _extract_layout(self, info: dict[bytes, Any]) -> SingleFileLayout | MultiFileLayout:
        """Pick the file layout from the keys present in ``info``."""
        has_length = b"length" in info
        has_files = b"files" in info
        if has_length == has_files:
            msg = (
                "Torrent info must specify exactly one of length (single file) "
                "or files (multi-file)"
            )
            raise TorrentError(msg)

        if has_length:
            length = _require(info, b"length", int, "info")
            if length < 0:
                msg = f"Invalid file length: {length}"
                raise TorrentError(msg)
            return SingleFileLayout(length=length)

        files = []
        for index, entry in enumerate(_require(info, b"files", list, "info")):
            where = f"info.files[{index}]"
            if not isinstance(entry, dict):
                msg = f"Invalid {where}: expected dict, got {type(entry).__name__}"
                raise TorrentError(msg)
            length = _require(entry, b"length", int, where)
            if length < 0:
                msg = f"Invalid file length in {where}: {length}"
                raise TorrentError(msg)
            path = _require(entry, b"path", list, where)
            if not path or not all(isinstance(part, bytes) for part in path):
                msg = f"Invalid path in {where}: expected non-empty list of byte strings"
                raise TorrentError(msg)
            files.append(FileInfo(length=length, path=[_text(part) for part in path]))

        return MultiFileLayout(files=files)

    def get_info_hash(self, torrent_data: TorrentInfo) -> bytes:
        """Get the info hash for a parsed torrent."""
        return compute_info_hash(torrent_data)

    def get_announce_url(self, torrent_data: TorrentInfo) -> str:
        """Get the announce URL for a parsed torrent."""
        return torrent_data.announce

    def get_total_length(self, torrent_data: TorrentInfo) -> int:
        """Get the total download length for a parsed torrent."""
        return total_length(torrent_data)

    def get_piece_length(self, torrent_data: TorrentInfo) -> int:
        """Get the piece length for a parsed torrent."""
        return torrent_data.info.piece_length

    def get_num_pieces(self, torrent_data: TorrentInfo) -> int:
        """Get the number of pieces for a parsed torrent."""
        return len(torrent_data.info.pieces) // PIECE_HASH_LENGTH

    def get_piece_hash(self, torrent_data: TorrentInfo, piece_index: int) -> bytes:
        """Get the SHA-1 hash for a specific piece."""
        if piece_index < 0 or piece_index >= self.get_num_pieces(torrent_data):
            msg = f"Invalid piece index: {piece_index}"
            raise TorrentError(msg)

        start = piece_index * PIECE_HASH_LENGTH
        return torrent_data.info.pieces[start : start + PIECE_HASH_LENGTH]


def parse(data: bytes) -> TorrentInfo:
    """Parse raw ``.torrent`` bytes into a TorrentInfo."""
    return TorrentParser().parse_bytes(data)


def compute_info_hash(torrent: TorrentInfo) -> bytes:
    """SHA-1 of the canonical encoding of the decoded info dictionary."""
    info_bencoded = encode(torrent.info.raw)
    return hashlib.sha1(info_bencoded).digest()  # nosec B324 - SHA-1 required by BitTorrent protocol (BEP 3)


def piece_hashes(torrent: TorrentInfo) -> list[bytes]:
    """Split ``pieces`` into the per-piece 20-byte digests, in piece order."""
    pieces = torrent.info.pieces
    return [
        pieces[start : start + PIECE_HASH_LENGTH]
        for start in range(0, len(pieces), PIECE_HASH_LENGTH)
    ]


def total_length(torrent: TorrentInfo) -> int:
    """Total bytes described by the torrent."""
    layout = torrent.info.layout
    if isinstance(layout, SingleFileLayout):
        return layout.length
    return sum(f.length for f in layout.files)
