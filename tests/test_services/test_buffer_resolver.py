"""Tests for job buffer resolution."""

import base64

import pytest

from spreadsheet_ingest.services.buffer_resolver import (
    BufferEncoding,
    ResolvedBuffer,
    decode_base64,
    resolve_buffer,
)

PAYLOAD = b"PK\x03\x04 workbook bytes \xff\x00"
ENCODED = base64.b64encode(PAYLOAD).decode()


class TestResolveBuffer:
    def test_raw_bytes(self) -> None:
        resolved = resolve_buffer(PAYLOAD)
        assert resolved == ResolvedBuffer(BufferEncoding.RAW, PAYLOAD)
        assert resolved.size == len(PAYLOAD)

    def test_bytearray_and_memoryview(self) -> None:
        assert resolve_buffer(bytearray(PAYLOAD)).data == PAYLOAD
        assert resolve_buffer(memoryview(PAYLOAD)).data == PAYLOAD

    def test_base64_string(self) -> None:
        resolved = resolve_buffer(ENCODED)
        assert resolved.encoding is BufferEncoding.BASE64
        assert resolved.data == PAYLOAD

    def test_buffer_object_with_byte_values(self) -> None:
        resolved = resolve_buffer({"type": "Buffer", "data": list(PAYLOAD)})
        assert resolved.encoding is BufferEncoding.BUFFER_BYTES
        assert resolved.data == PAYLOAD

    def test_buffer_object_with_base64_fragments(self) -> None:
        fragments = [ENCODED[:8], ENCODED[8:20], ENCODED[20:]]
        resolved = resolve_buffer({"type": "Buffer", "data": fragments})
        assert resolved.encoding is BufferEncoding.BUFFER_BASE64
        assert resolved.data == PAYLOAD

    def test_empty_buffer_object(self) -> None:
        assert resolve_buffer({"type": "Buffer", "data": []}).data == b""

    def test_already_resolved_passes_through(self) -> None:
        resolved = ResolvedBuffer(BufferEncoding.RAW, PAYLOAD)
        assert resolve_buffer(resolved) is resolved

    @pytest.mark.parametrize(
        "value",
        [
            None,
            12,
            ["not", "an", "object"],
            {"type": "Blob", "data": [1, 2]},
            {"type": "Buffer"},
            {"type": "Buffer", "data": "AAAA"},
            {"type": "Buffer", "data": [1, "AAAA"]},
            {"type": "Buffer", "data": [1, 256]},
            {"type": "Buffer", "data": [-1]},
            {"type": "Buffer", "data": [True, False]},
            {"type": "Buffer", "data": [1.5]},
            "not*base64",
        ],
    )
    def test_rejected_values(self, value) -> None:
        with pytest.raises(ValueError):
            resolve_buffer(value)


class TestDecodeBase64:
    def test_whitespace_is_ignored(self) -> None:
        wrapped = "\n".join(ENCODED[i : i + 8] for i in range(0, len(ENCODED), 8))
        assert decode_base64(wrapped) == PAYLOAD

    def test_missing_padding_is_accepted(self) -> None:
        assert decode_base64(base64.b64encode(b"ab").decode().rstrip("=")) == b"ab"

    def test_url_safe_alphabet_is_accepted(self) -> None:
        raw = b"\xfb\xff\xfe"
        assert decode_base64(base64.urlsafe_b64encode(raw).decode()) == raw
