"""Canonical request serialisation for request signing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from mvpbridge.signing.encoding import EMPTY_SHA256, sha256_hex, uri_encode
from mvpbridge.signing.errors import EncodingError

__all__ = [
    "CanonicalRequest",
    "VENDOR_PREFIX",
    "canonical_headers",
    "canonical_query_string",
    "canonical_request",
    "canonical_uri",
    "payload_hash",
]

# Only these headers take part in the signature, plus anything vendor-prefixed.
VENDOR_PREFIX = "x-amz-"
_SIGNABLE = frozenset({"host", "content-type"})

HeaderInput = Mapping[str, str] | Iterable[tuple[str, str]]
QueryInput = str | Iterable[tuple[str, str]]


@dataclass(frozen=True)
class CanonicalRequest:
    """The six parts of a canonical request, in signing order."""

    method: str
    uri: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    def render(self) -> str:
        return "\n".join(
            [
                self.method,
                self.uri,
                self.query,
                self.headers,
                self.signed_headers,
                self.payload_hash,
            ]
        )


def _pairs(headers: HeaderInput) -> Iterable[tuple[str, str]]:
    if isinstance(headers, Mapping):
        return headers.items()
    return headers


def canonical_uri(path: str) -> str:
    """Path is used verbatim; an empty path means the root."""
    return path or "/"


def _decode_query(query: str) -> list[tuple[bytes, bytes]]:
    """Split a raw query into ``(name, value)`` byte pairs.

    Escapes are decoded to the exact bytes they name, so escapes that are
    not valid UTF-8 survive re-encoding unchanged.
    """
    pairs: list[tuple[bytes, bytes]] = []
    for part in query.split("&"):
        if not part:
            continue
        name, _, value = part.partition("=")
        pairs.append(
            (
                unquote_to_bytes(name.replace("+", " ")),
                unquote_to_bytes(value.replace("+", " ")),
            )
        )
    return pairs


def canonical_query_string(query: QueryInput) -> str:
    """Group, sort and encode query parameters.

    Args:
        query: A raw query string (decoded first, so ``%2f`` and ``%2F``
            compare equal) or ``(name, value)`` pairs, names may repeat.

    Returns:
        ``name=value`` pairs joined by ``&``, sorted by encoded name and
        then by encoded value. Empty input gives an empty string.
    """
    items: Iterable[tuple[str | bytes, str | bytes]]
    items = _decode_query(query) if isinstance(query, str) else query

    grouped: dict[str, list[str]] = {}
    for name, value in items:
        grouped.setdefault(uri_encode(name), []).append(uri_encode(value))

    return "&".join(
        f"{name}={value}" for name in sorted(grouped) for value in sorted(grouped[name])
    )



def canonical_headers(headers: HeaderInput) -> tuple[str, str]:
    """Select, merge and render the signable headers.

    Header names are lowercased. Only ``host``, ``content-type`` and
    ``x-amz-*`` headers are kept. Repeated names merge into one line with
    values trimmed and joined by commas.

    Returns:
        ``(canonical_block, signed_header_list)``.

    Raises:
        EncodingError: a header name or value contains a line break.
    """
    selected: dict[str, list[str]] = {}
    for name, value in _pairs(headers):
        lower = name.strip().lower()
        if lower not in _SIGNABLE and not lower.startswith(VENDOR_PREFIX):
            continue
        if any(c in lower for c in "\r\n:") or not lower:
            raise EncodingError(f"invalid header name: {name!r}")
        if "\r" in value or "\n" in value:
            raise EncodingError(f"header {lower} contains a line break")
        selected.setdefault(lower, []).append(value.strip())

    names = sorted(selected)
    block = "".join(f"{n}:{','.join(selected[n])}\n" for n in names)
    return block, ";".join(names)


def payload_hash(body: bytes | None) -> str:
    """SHA-256 hex of the body. The bytes are read, never consumed."""
    if not body:
        return EMPTY_SHA256
    return sha256_hex(body)


def canonical_request(
    method: str,
    path: str,
    query: QueryInput,
    headers: HeaderInput,
    body_hash: str,
) -> CanonicalRequest:
    """Build the canonical form of a request.

    Args:
        method: HTTP method, uppercased here.
        path: Raw URL path.
        query: Raw query string or ``(name, value)`` pairs.
        headers: Request headers; non-signable ones are ignored.
        body_hash: Output of :func:`payload_hash`.
    """
    if not method or not method.strip():
        raise EncodingError("request method is empty")
    block, signed = canonical_headers(headers)
    return CanonicalRequest(
        method=method.strip().upper(),
        uri=canonical_uri(path),
        query=canonical_query_string(query),
        headers=block,
        signed_headers=signed,
        payload_hash=body_hash,
    )
