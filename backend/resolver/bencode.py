"""
Bencode codec and torrent metadata helpers.

Decoding is a single left-to-right scan that stops at the first structural
violation. Encoding always produces the canonical form (dictionary keys sorted
by raw bytes), which is what makes the info-hash reproducible.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .errors import BencodeEncodeError, MalformedBencodeError

BencodeValue = Union[int, bytes, List[Any], Dict[bytes, Any]]

_DIGITS = b"0123456789"

# Maximum nesting of lists and dictionaries.
MAX_DEPTH = 256


class BencodeDecoder:
    """Stateful decoder over an immutable byte buffer."""

    def __init__(self, data: bytes, *, max_depth: int = MAX_DEPTH) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("Bencode input must be bytes")
        self._data = bytes(data)
        self._offset = 0
        self._depth = 0
        self._max_depth = max_depth

    def decode(self) -> BencodeValue:
        """Decode the whole buffer, rejecting trailing bytes."""

        value = self._decode_next()
        if self._offset != len(self._data):
            raise MalformedBencodeError("Trailing data after bencoded value", self._offset)
        return value

    def _peek(self) -> int:
        if self._offset >= len(self._data):
            raise MalformedBencodeError("Unexpected end of data", self._offset)
        return self._data[self._offset]

    def _decode_next(self) -> BencodeValue:
        token = self._peek()
        if token == ord("i"):
            return self._decode_int()
        if token == ord("l"):
            return self._decode_list()
        if token == ord("d"):
            return self._decode_dict()
        if token in _DIGITS:
            return self._decode_bytes()
        raise MalformedBencodeError(f"Unexpected token {chr(token)!r}", self._offset)

    def _decode_int(self) -> int:
        start = self._offset + 1
        end = self._data.find(b"e", start)
        if end == -1:
            raise MalformedBencodeError("Integer is missing its terminator", self._offset)
        raw = self._data[start:end]
        digits = raw[1:] if raw.startswith(b"-") else raw
        if not digits or any(byte not in _DIGITS for byte in digits):
            raise MalformedBencodeError(f"Invalid integer {raw!r}", start)
        if (digits.startswith(b"0") and len(digits) > 1) or raw == b"-0":
            raise MalformedBencodeError(f"Non-canonical integer {raw!r}", start)
        self._offset = end + 1
        return int(raw)

    def _decode_bytes(self) -> bytes:
        start = self._offset
        colon = self._data.find(b":", start)
        if colon == -1:
            raise MalformedBencodeError("Byte string is missing its length separator", start)
        prefix = self._data[start:colon]
        if not prefix or any(byte not in _DIGITS for byte in prefix):
            raise MalformedBencodeError(f"Invalid byte string length {prefix!r}", start)
        if prefix.startswith(b"0") and len(prefix) > 1:
            raise MalformedBencodeError(f"Non-canonical byte string length {prefix!r}", start)
        length = int(prefix)
        begin = colon + 1
        end = begin + length
        if end > len(self._data):
            raise MalformedBencodeError(
                f"Byte string of length {length} is truncated", begin
            )
        self._offset = end
        return self._data[begin:end]

    def _decode_list(self) -> list[BencodeValue]:
        self._enter()
        items: list[BencodeValue] = []
        while self._peek() != ord("e"):
            items.append(self._decode_next())
        self._offset += 1
        self._depth -= 1
        return items

    def _decode_dict(self) -> dict[bytes, BencodeValue]:
        self._enter()
        result: dict[bytes, BencodeValue] = {}
        while self._peek() != ord("e"):
            if self._peek() not in _DIGITS:
                raise MalformedBencodeError("Dictionary key must be a byte string", self._offset)
            key_offset = self._offset
            key = self._decode_bytes()
            if key in result:
                raise MalformedBencodeError(f"Duplicate dictionary key {key!r}", key_offset)
            result[key] = self._decode_next()
        self._offset += 1
        self._depth -= 1
        return result

    def _enter(self) -> None:
        self._depth += 1
        if self._depth > self._max_depth:
            raise MalformedBencodeError(f"Nesting deeper than {self._max_depth} levels", self._offset)
        self._offset += 1


def decode(data: bytes) -> BencodeValue:
    """Decode a complete bencoded payload."""

    return BencodeDecoder(data).decode()


def encode(value: Any) -> bytes:
    """Encode ``value`` in canonical bencode form."""

    chunks: list[bytes] = []
    _encode_into(value, chunks)
    return b"".join(chunks)


def _encode_into(value: Any, chunks: list[bytes]) -> None:
    # bool is an int subclass but has no bencode meaning
    if isinstance(value, bool):
        raise BencodeEncodeError("Booleans cannot be bencoded")
    if isinstance(value, int):
        chunks.append(b"i%de" % value)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        chunks.append(b"%d:" % len(raw))
        chunks.append(raw)
    elif isinstance(value, str):
        _encode_into(value.encode("utf-8"), chunks)
    elif isinstance(value, (list, tuple)):
        chunks.append(b"l")
        for item in value:
            _encode_into(item, chunks)
        chunks.append(b"e")
    elif isinstance(value, dict):
        items: list[tuple[bytes, Any]] = []
        for key, item in value.items():
            if isinstance(key, str):
                key = key.encode("utf-8")
            if not isinstance(key, (bytes, bytearray)):
                raise BencodeEncodeError(f"Dictionary keys must be strings, got {type(key).__name__}")
            items.append((bytes(key), item))
        items.sort(key=lambda pair: pair[0])
        chunks.append(b"d")
        for key, item in items:
            _encode_into(key, chunks)
            _encode_into(item, chunks)
        chunks.append(b"e")
    else:
        raise BencodeEncodeError(f"Cannot bencode value of type {type(value).__name__}")


def _info_dict(root: BencodeValue) -> dict[bytes, BencodeValue]:
    if not isinstance(root, dict):
        raise MalformedBencodeError("Torrent root must be a dictionary")
    info = root.get(b"info")
    if not isinstance(info, dict):
        raise MalformedBencodeError("Torrent is missing its 'info' dictionary")
    return info


def info_hash_of(root: BencodeValue) -> str:
    """Return the hex SHA-1 of the canonical encoding of ``root['info']``."""

    return hashlib.sha1(encode(_info_dict(root))).hexdigest()


def compute_info_hash(torrent_bytes: bytes) -> str:
    """Compute the lowercase hex info-hash of a raw torrent file."""

    return info_hash_of(decode(torrent_bytes))


@dataclass(slots=True, frozen=True)
class TorrentMetadata:
    """Summary of a torrent file used to populate store records."""

    info_hash: str
    name: str
    total_size: int
    file_count: int
    announce: str | None = None


def _text(value: Any) -> str | None:
    if not isinstance(value, (bytes, bytearray)):
        return None
    return bytes(value).decode("utf-8", errors="replace")


def parse_torrent(torrent_bytes: bytes) -> TorrentMetadata:
    """Decode a torrent file and extract its identity and size information."""

    root = decode(torrent_bytes)
    info = _info_dict(root)

    files = info.get(b"files")
    if isinstance(files, list):
        total_size = 0
        for entry in files:
            length = entry.get(b"length") if isinstance(entry, dict) else None
            if not isinstance(length, int):
                raise MalformedBencodeError("File entry is missing an integer 'length'")
            total_size += length
        file_count = len(files)
    else:
        length = info.get(b"length")
        total_size = length if isinstance(length, int) else 0
        file_count = 1 if isinstance(length, int) else 0

    return TorrentMetadata(
        info_hash=info_hash_of(root),
        name=_text(info.get(b"name")) or "Unknown",
        total_size=total_size,
        file_count=file_count,
        announce=_text(root.get(b"announce")),
    )
