"""Resolve the accepted job ``buffer`` encodings into one byte sequence.

Producers send the workbook as raw bytes, as a base64 string, or as a
serialized Node.js Buffer object ``{"type": "Buffer", "data": [...]}``
whose ``data`` is either byte values or base64 fragments to be joined.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

BUFFER_OBJECT_TYPE = "Buffer"

_WHITESPACE = re.compile(r"\s+")
_URLSAFE = str.maketrans("-_", "+/")


class BufferEncoding(str, Enum):
    """How the workbook bytes arrived in the job payload."""

    RAW = "raw"
    BASE64 = "base64"
    BUFFER_BYTES = "buffer_bytes"
    BUFFER_BASE64 = "buffer_base64"


@dataclass(frozen=True)
class ResolvedBuffer:
    """Canonical workbook bytes plus the encoding they were received in."""

    encoding: BufferEncoding
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def resolve_buffer(value: Any) -> ResolvedBuffer:
    """Normalize any accepted buffer encoding to bytes.

    Raises:
        ValueError: If the value is not one of the accepted encodings or its
            contents cannot be decoded.
    """
    if isinstance(value, ResolvedBuffer):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ResolvedBuffer(BufferEncoding.RAW, bytes(value))
    if isinstance(value, str):
        return ResolvedBuffer(BufferEncoding.BASE64, decode_base64(value))
    if isinstance(value, Mapping):
        return _resolve_buffer_object(value)
    raise ValueError(
        "buffer must be bytes, a base64 string or a Buffer object, "
        f"got {type(value).__name__}"
    )


def _resolve_buffer_object(value: Mapping[str, Any]) -> ResolvedBuffer:
    if value.get("type") != BUFFER_OBJECT_TYPE:
        raise ValueError(f"buffer object type must be '{BUFFER_OBJECT_TYPE}'")

    data = value.get("data")
    if not isinstance(data, list):
        raise ValueError("buffer object data must be a list")

    if data and all(isinstance(item, str) for item in data):
        return ResolvedBuffer(BufferEncoding.BUFFER_BASE64, decode_base64("".join(data)))

    if all(isinstance(item, int) and not isinstance(item, bool) for item in data):
        out_of_range = [item for item in data if not 0 <= item <= 255]
        if out_of_range:
            raise ValueError(
                f"buffer object data holds values outside 0-255: {out_of_range[:5]}"
            )
        return ResolvedBuffer(BufferEncoding.BUFFER_BYTES, bytes(data))

    raise ValueError("buffer object data must be all byte values or all base64 strings")


def decode_base64(text: str) -> bytes:
    """Decode base64 leniently: whitespace, URL-safe characters and missing
    padding are accepted; any other stray character is an error."""
    cleaned = _WHITESPACE.sub("", text).translate(_URLSAFE).rstrip("=")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"buffer is not valid base64: {e}") from e
