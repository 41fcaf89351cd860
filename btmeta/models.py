"""Pydantic models for btmeta.

Provides validated data models for parsed torrents, tracker responses and
configuration.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field, field_validator

PIECE_HASH_LENGTH = 20


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AnnounceEvent(str, Enum):
    """Announce events understood by HTTP trackers."""

    STARTED = "started"
    COMPLETED = "completed"
    STOPPED = "stopped"


class PeerInfo(BaseModel):
    """A peer returned by a tracker."""

    ip: str = Field(..., description="Peer IPv4 address")
    port: int = Field(..., ge=0, le=65535, description="Peer port number")

    model_config = {"frozen": True}

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v):
        """Validate IP address format."""
        if not v:
            msg = "IP address cannot be empty"
            raise ValueError(msg)
        return v

    def __str__(self) -> str:
        """String representation of peer info."""
        return f"{self.ip}:{self.port}"


class TrackerResponse(BaseModel):
    """Decoded announce response."""

    peers: list[PeerInfo] = Field(default_factory=list, description="List of peers")
    interval: int | None = Field(None, ge=0, description="Announce interval in seconds")
    min_interval: int | None = Field(None, ge=0, description="Minimum announce interval")
    complete: int | None = Field(None, ge=0, description="Number of seeders")
    incomplete: int | None = Field(None, ge=0, description="Number of leechers")
    tracker_id: bytes | None = Field(None, description="Opaque tracker id")
    warning_message: str | None = Field(None, description="Warning message")


class FileInfo(BaseModel):
    """One file of a multi-file torrent."""

    length: int = Field(..., ge=0, description="File length in bytes")
    path: list[str] = Field(..., min_length=1, description="File path components")

    @property
    def name(self) -> str:
        """Final path component."""
        return self.path[-1]

    @property
    def full_path(self) -> str:
        """Path components joined with '/'."""
        return "/".join(self.path)


class SingleFileLayout(BaseModel):
    """Info dictionary carrying a top-level ``length``."""

    length: int = Field(..., ge=0, description="Length of the single file")


class MultiFileLayout(BaseModel):
    """Info dictionary carrying a ``files`` list."""

    files: list[FileInfo] = Field(..., description="Files in torrent order")


FileLayout = Union[SingleFileLayout, MultiFileLayout]


class InfoDict(BaseModel):
    """The ``info`` dictionary of a torrent.

    ``raw`` is the dictionary exactly as decoded, including keys that are
    not modelled here; the info-hash is always computed from it.
    """

    name: str = Field(..., description="Suggested file or directory name")
    piece_length: int = Field(..., gt=0, description="Piece length in bytes")
    pieces: bytes = Field(..., description="Concatenated 20-byte SHA-1 piece hashes")
    layout: FileLayout = Field(..., description="Single or multi file layout")
    is_private: bool = Field(
        default=False,
        description="Whether torrent is marked as private (BEP 27)",
    )
    raw: dict[bytes, Any] = Field(..., description="Decoded info dictionary")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("pieces")
    @classmethod
    def validate_pieces(cls, v: bytes) -> bytes:
        """Validate that pieces holds whole SHA-1 digests."""
        if len(v) % PIECE_HASH_LENGTH != 0:
            msg = f"pieces length {len(v)} is not a multiple of {PIECE_HASH_LENGTH}"
            raise ValueError(msg)
        return v

    @property
    def is_multi_file(self) -> bool:
        """True for a multi-file layout."""
        return isinstance(self.layout, MultiFileLayout)


class TorrentInfo(BaseModel):
    """Parsed torrent metainfo."""

    announce: str = Field(..., description="Announce URL")
    info: InfoDict = Field(..., description="Info dictionary")
    announce_list: list[list[str]] | None = Field(None, description="Announce tiers")
    comment: str | None = Field(None, description="Torrent comment")
    created_by: str | None = Field(None, description="Created by")
    creation_date: int | None = Field(None, description="Creation date")
    encoding: str | None = Field(None, description="String encoding")

    @property
    def name(self) -> str:
        """Torrent display name."""
        return self.info.name

    @property
    def piece_length(self) -> int:
        """Bytes per piece."""
        return self.info.piece_length


class NetworkConfig(BaseModel):
    """Network configuration."""

    listen_port: int = Field(
        default=6881,
        ge=1,
        le=65535,
        description="Port reported to trackers",
    )
    tracker_timeout: float = Field(
        default=15.0,
        gt=0.0,
        le=300.0,
        description="Tracker request timeout in seconds",
    )
    peer_id_prefix: str = Field(
        default="-BM0100-",
        min_length=1,
        max_length=20,
        description="Azureus-style peer id prefix",
    )
    user_agent: str = Field(
        default="btmeta/0.1.0",
        description="User-Agent header sent to trackers",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Emit JSON log lines instead of rich console output",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    network: NetworkConfig = Field(
        default_factory=NetworkConfig,
        description="Network configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
