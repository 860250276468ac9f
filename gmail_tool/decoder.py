"""Helpers for encoding and decoding Gmail payloads and headers."""

from __future__ import annotations

import base64
import binascii
import string
from collections.abc import AsyncIterable
from email.header import decode_header
from typing import List, Union

from .errors import UnsupportedPayloadType

StaticPayload = Union[bytes, bytearray, memoryview, str]
Payload = Union[StaticPayload, AsyncIterable]

_URLSAFE_ALPHABET = (string.ascii_letters + string.digits + "-_=").encode("ascii")


def b64url_decode(data: str | bytes | None, *, strict: bool = False) -> bytes:
    """
    Decode the URL-safe base64 blobs Gmail returns (without guaranteed padding).
    Malformed input yields b"" unless `strict` is set.
    """
    if not data:
        return b""
    if isinstance(data, str):
        raw = data.encode()
    else:
        raw = data
    padding = (-len(raw)) % 4
    if padding:
        raw += b"=" * padding
    if strict:
        stray = raw.translate(None, _URLSAFE_ALPHABET)
        if stray:
            raise binascii.Error(f"non URL-safe base64 characters: {stray[:8]!r}")
        return base64.b64decode(raw, altchars=b"-_", validate=True)
    try:
        return base64.urlsafe_b64decode(raw)
    except (binascii.Error, ValueError):
        return b""


def b64url_encode(data: bytes) -> str:
    """Encode a complete message for the `raw` field of send/draft requests."""
    return base64.urlsafe_b64encode(data).decode("ascii")


def b64encode(data: bytes) -> str:
    """Standard-alphabet base64, as embedded in MIME part bodies."""
    return base64.b64encode(data).decode("ascii")


def decode_header_str(value: str | bytes | None) -> str:
    """
    Decode RFC 2047 encoded words into a single Unicode string.
    """
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", "replace")
    try:
        parts = decode_header(value)
    except Exception:
        return value

    out: List[str] = []
    for text, charset in parts:
        if isinstance(text, bytes):
            enc = charset or "utf-8"
            try:
                out.append(text.decode(enc, "replace"))
            except LookupError:
                out.append(text.decode("utf-8", "replace"))
        else:
            out.append(text)
    return "".join(out)


def _static_bytes(payload: StaticPayload) -> bytes:
    match payload:
        case bytes():
            return payload
        case bytearray():
            return bytes(payload)
        case memoryview():
            # tobytes() honours the view's offset and length
            return payload.tobytes()
        case str():
            return payload.encode("utf-8")
        case _:
            raise UnsupportedPayloadType(type(payload).__name__)


async def _drain(stream: AsyncIterable) -> bytes:
    chunks: List[bytes] = []
    try:
        async for chunk in stream:
            chunks.append(_static_bytes(chunk))
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
    return b"".join(chunks)


async def normalize_bytes(payload: Payload) -> bytes:
    """
    Collapse any content shape a download may produce into one bytes object.

    Accepts bytes, bytearray, memoryview, str (UTF-8) or an async iterable of
    chunks in any of those shapes. Streams are drained in arrival order and
    always closed, even when a chunk is rejected.
    """
    match payload:
        case bytes() | bytearray() | memoryview() | str():
            return _static_bytes(payload)
        case AsyncIterable():
            return await _drain(payload)
        case _:
            raise UnsupportedPayloadType(type(payload).__name__)


__all__ = [
    "Payload",
    "b64encode",
    "b64url_decode",
    "b64url_encode",
    "decode_header_str",
    "normalize_bytes",
]
