"""Byte-level helpers shared by the request signer."""

from __future__ import annotations

import hashlib
import hmac as hmac_mod

__all__ = ["EMPTY_SHA256", "hmac_sha256", "sha256_hex", "uri_encode"]

EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


def uri_encode(value: str | bytes, *, encode_slash: bool = True) -> str:
    """Percent-encode *value* using the RFC 3986 unreserved set.

    Every UTF-8 byte outside ``A-Z a-z 0-9 - _ . ~`` becomes ``%XX`` with
    uppercase hex. ``/`` is left alone when *encode_slash* is False. Bytes
    are encoded as given.
    """
    data = value.encode("utf-8") if isinstance(value, str) else value
    out: list[str] = []
    for byte in data:
        if byte in _UNRESERVED or (byte == 0x2F and not encode_slash):
            out.append(chr(byte))
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


def sha256_hex(data: bytes) -> str:
    """Hex-encoded SHA-256 digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, data: str | bytes) -> bytes:
    """Raw HMAC-SHA256 of *data* under *key*."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hmac_mod.new(key, data, hashlib.sha256).digest()
