"""Bencoding for the BitTorrent protocol.

Values map onto Python's native types: byte strings are ``bytes``, integers
are ``int``, lists are ``list`` and dictionaries are ``dict`` keyed by raw
``bytes``. Integers and length prefixes must be written in canonical form;
encoding always emits dictionary keys in sorted order.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Dict, List, Union

from btmeta.utils.exceptions import BencodeDecodeError, BencodeEncodeError

BencodeValue = Union[bytes, int, List["BencodeValue"], Dict[bytes, "BencodeValue"]]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_DIGITS = re.compile(rb"[0-9]+")
_INTEGER_BODY = re.compile(rb"-?(?:0|[1-9][0-9]*)")
# int() refuses very long digit strings, so bodies are length-checked first
_INT64_DIGITS = len(str(INT64_MAX))

_INT = ord("i")
_LIST = ord("l")
_DICT = ord("d")
_END = ord("e")
_COLON = ord(":")


def _is_digit(byte: int) -> bool:
    return 0x30 <= byte <= 0x39


class BencodeDecoder:
    """Recursive-descent decoder with a single cursor over ``data``.

    Each call to :meth:`decode` consumes exactly one value starting at the
    current position. Bytes already consumed are never looked at again.
    """

    def __init__(self, data: bytes | bytearray | memoryview):
        """Initialize the decoder over an immutable copy of ``data``."""
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        """Offset of the next unconsumed byte."""
        return self._pos

    def remaining(self) -> bytes:
        """Return the unconsumed tail of the buffer."""
        return self._data[self._pos :]

    def at_end(self) -> bool:
        """Return True when every byte has been consumed."""
        return self._pos >= len(self._data)

    def decode(self) -> BencodeValue:
        """Decode one value at the cursor and advance past it.

        Raises:
            BencodeDecodeError: If the input at the cursor is not valid bencode

        """
        start = self._pos
        try:
            return self._decode_value()
        except RecursionError as e:
            msg = f"Bencode nesting too deep (value starting at position {start})"
            raise BencodeDecodeError(msg, start) from e

    def _peek(self, construct: str, start: int) -> int:
        if self._pos >= len(self._data):
            msg = f"Unexpected end of input in {construct} starting at position {start}"
            raise BencodeDecodeError(msg, start)
        return self._data[self._pos]

    def _decode_value(self) -> BencodeValue:
        start = self._pos
        lead = self._peek("value", start)
        if _is_digit(lead):
            return self._decode_bytes()
        if lead == _INT:
            return self._decode_int()
        if lead == _LIST:
            return self._decode_list()
        if lead == _DICT:
            return self._decode_dict()
        msg = f"Invalid bencode type prefix {bytes([lead])!r} at position {start}"
        raise BencodeDecodeError(msg, start)

    def _decode_int(self) -> int:
        start = self._pos
        end = self._data.find(b"e", start + 1)
        if end == -1:
            msg = f"Unterminated integer at position {start}"
            raise BencodeDecodeError(msg, start)

        body = self._data[start + 1 : end]
        if _INTEGER_BODY.fullmatch(body) is None or body == b"-0":
            msg = f"Invalid integer {body!r} at position {start}"
            raise BencodeDecodeError(msg, start)

        if len(body.lstrip(b"-")) > _INT64_DIGITS:
            msg = f"Integer out of 64-bit range at position {start}"
            raise BencodeDecodeError(msg, start)

        value = int(body)
        if not INT64_MIN <= value <= INT64_MAX:
            msg = f"Integer out of 64-bit range at position {start}"
            raise BencodeDecodeError(msg, start)

        self._pos = end + 1
        return value

    def _decode_bytes(self) -> bytes:
        start = self._pos
        match = _DIGITS.match(self._data, start)
        # callers only dispatch here on a digit, so the match is never empty
        digits = match.group()  # type: ignore[union-attr]
        colon = match.end()  # type: ignore[union-attr]

        if colon >= len(self._data) or self._data[colon] != _COLON:
            msg = f"Missing ':' after byte string length at position {start}"
            raise BencodeDecodeError(msg, start)
        if len(digits) > 1 and digits[0] == 0x30:
            msg = f"Byte string length {digits!r} has leading zeros at position {start}"
            raise BencodeDecodeError(msg, start)
        if len(digits) > len(str(len(self._data))):
            msg = f"Byte string length at position {start} exceeds the input size"
            raise BencodeDecodeError(msg, start)

        length = int(digits)
        begin = colon + 1
        end = begin + length
        if end > len(self._data):
            available = len(self._data) - begin
            msg = (
                f"Byte string at position {start} declares {length} bytes "
                f"but only {available} remain"
            )
            raise BencodeDecodeError(msg, start)

        self._pos = end
        return self._data[begin:end]

    def _decode_list(self) -> list[BencodeValue]:
        start = self._pos
        self._pos += 1  # Skip 'l'
        items: list[BencodeValue] = []
        while self._peek("list", start) != _END:
            items.append(self._decode_value())
        self._pos += 1  # Skip 'e'
        return items

    def _decode_dict(self) -> dict[bytes, BencodeValue]:
        start = self._pos
        self._pos += 1  # Skip 'd'
        result: dict[bytes, BencodeValue] = {}
        while True:
            lead = self._peek("dictionary", start)
            if lead == _END:
                break
            if not _is_digit(lead):
                msg = (
                    f"Dictionary key at position {self._pos} is not a byte string"
                )
                raise BencodeDecodeError(msg, self._pos)

            key_pos = self._pos
            key = self._decode_bytes()
            if key in result:
                msg = f"Duplicate dictionary key {key!r} at position {key_pos}"
                raise BencodeDecodeError(msg, key_pos)
            result[key] = self._decode_value()
        self._pos += 1  # Skip 'e'
        return result


class BencodeEncoder:
    """Canonical bencode encoder.

    Dictionary keys are always emitted in ascending byte order, whatever
    order they were inserted in. ``str`` values and keys are accepted and
    encoded as UTF-8 byte strings.
    """

    def encode(self, value: Any) -> bytes:
        """Encode ``value`` to bencode.

        Raises:
            BencodeEncodeError: If ``value`` contains anything bencode cannot hold

        """
        chunks: list[bytes] = []
        self._encode(value, chunks)
        return b"".join(chunks)

    def _encode(self, value: Any, out: list[bytes]) -> None:
        # bool is an int subclass; it is not a bencode value
        if isinstance(value, bool):
            msg = f"Cannot bencode boolean value {value!r}"
            raise BencodeEncodeError(msg)
        if isinstance(value, int):
            self._encode_int(value, out)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            self._encode_bytes(bytes(value), out)
        elif isinstance(value, str):
            self._encode_bytes(value.encode("utf-8"), out)
        elif isinstance(value, (list, tuple)):
            out.append(b"l")
            for item in value:
                self._encode(item, out)
            out.append(b"e")
        elif isinstance(value, Mapping):
            self._encode_dict(value, out)
        else:
            msg = f"Cannot bencode value of type {type(value).__name__}"
            raise BencodeEncodeError(msg)

    def _encode_int(self, value: int, out: list[bytes]) -> None:
        if not INT64_MIN <= value <= INT64_MAX:
            msg = f"Integer {value} is outside the 64-bit range"
            raise BencodeEncodeError(msg)
        out.append(b"i%de" % value)

    def _encode_bytes(self, value: bytes, out: list[bytes]) -> None:
        out.append(b"%d:" % len(value))
        out.append(value)

    def _encode_dict(self, value: Mapping[Any, Any], out: list[bytes]) -> None:
        items: dict[bytes, Any] = {}
        for key, item in value.items():
            if isinstance(key, str):
                raw_key = key.encode("utf-8")
            elif isinstance(key, (bytes, bytearray)):
                raw_key = bytes(key)
            else:
                msg = f"Dictionary key must be bytes or str, not {type(key).__name__}"
                raise BencodeEncodeError(msg)
            if raw_key in items:
                msg = f"Dictionary key {raw_key!r} appears more than once"
                raise BencodeEncodeError(msg)
            items[raw_key] = item

        out.append(b"d")
        for raw_key in sorted(items):
            self._encode_bytes(raw_key, out)
            self._encode(items[raw_key], out)
        out.append(b"e")


def decode_prefix(data: bytes | bytearray | memoryview) -> tuple[BencodeValue, bytes]:
    """Decode the first value in ``data`` and return it with the unconsumed rest."""
    decoder = BencodeDecoder(data)
    value = decoder.decode()
    return value, decoder.remaining()


def decode(data: bytes | bytearray | memoryview) -> BencodeValue:
    """Decode ``data`` as exactly one bencoded value.

    Raises:
        BencodeDecodeError: If ``data`` is malformed or has trailing bytes

    """
    decoder = BencodeDecoder(data)
    value = decoder.decode()
    if not decoder.at_end():
        msg = f"Trailing data after bencoded value at position {decoder.position}"
        raise BencodeDecodeError(msg, decoder.position)
    return value


def encode(value: Any) -> bytes:
    """Encode ``value`` as canonical bencode."""
    return BencodeEncoder().encode(value)
