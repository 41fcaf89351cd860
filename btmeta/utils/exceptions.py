"""Exception hierarchy for btmeta.

Provides the error kinds raised by the codec, the metainfo model and the
tracker client so callers can tell "not bencode" from "bencode but not a
valid torrent", and "tracker unreachable" from "tracker spoke nonsense".
"""

from __future__ import annotations

from typing import Any


class BtMetaError(Exception):
    """Base exception for all btmeta errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize btmeta error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(BtMetaError):
    """Network-related errors."""


class TrackerError(NetworkError):
    """Tracker could not be reached or answered with a non-2xx status."""


class ProtocolError(BtMetaError):
    """BitTorrent protocol errors."""


class TrackerProtocolError(ProtocolError):
    """Tracker answered, but the body is not a valid compact peer response."""


class TrackerFailureError(TrackerProtocolError):
    """Tracker answered with an explicit ``failure reason``."""

    def __init__(self, reason: str):
        """Initialize with the tracker supplied reason."""
        super().__init__(f"Tracker failure: {reason}", {"reason": reason})
        self.reason = reason


class ValidationError(BtMetaError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class TorrentError(ValidationError):
    """Well-formed bencode that is not a valid torrent."""


class BencodeError(ValidationError):
    """Bencode encoding/decoding errors."""


class BencodeDecodeError(BencodeError):
    """Malformed bencode input."""

    def __init__(self, message: str, position: int):
        """Initialize with the byte offset where decoding failed."""
        super().__init__(message, {"position": position})
        self.position = position


class BencodeEncodeError(BencodeError):
    """Value cannot be represented in bencode."""
