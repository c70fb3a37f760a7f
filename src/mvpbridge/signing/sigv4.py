"""Signature Version 4 request signer.

``sign`` is a pure function of (request, credential, time): it performs no
I/O, reads no clock and keeps no state, so one credential can sign requests
from many threads at once. ``SigV4Auth`` is the thin httpx wrapper that
supplies the real time at the call site.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from mvpbridge.signing.canonical import canonical_request, payload_hash
from mvpbridge.signing.encoding import hmac_sha256, sha256_hex
from mvpbridge.signing.errors import ConfigurationError, EncodingError
from mvpbridge.signing.keys import credential_scope, derive_signing_key

if TYPE_CHECKING:
    from mvpbridge.settings import Settings

__all__ = [
    "ALGORITHM",
    "Credential",
    "HttpRequest",
    "SigV4Auth",
    "SignedHeaders",
    "compute_signature",
    "format_timestamp",
    "render_authorization",
    "sign",
    "string_to_sign",
]

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"

# Headers the signer writes itself; stale copies on the request are dropped.
_GENERATED = frozenset({"x-amz-date", "x-amz-content-sha256", "authorization"})


@dataclass(frozen=True)
class Credential:
    """Static signing credential. The secret is kept out of ``repr``."""

    access_id: str
    secret: str = field(repr=False)
    region: str
    service: str

    def validate(self) -> None:
        """Raise ConfigurationError for the first missing field."""
        for name in ("access_id", "secret", "region", "service"):
            if not getattr(self, name).strip():
                raise ConfigurationError(f"credential {name} is missing or empty")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        service: str,
        region: str | None = None,
    ) -> Credential:
        """Build a validated credential from environment settings."""
        credential = cls(
            access_id=settings.aws_access_key_id,
            secret=settings.aws_secret_access_key.get_secret_value(),
            region=region or settings.aws_region,
            service=service,
        )
        credential.validate()
        return credential


@dataclass(frozen=True)
class HttpRequest:
    """HTTP-stack independent view of a request about to be signed."""

    method: str
    url: str
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes | None = None

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        body: bytes | None = None,
    ) -> HttpRequest:
        if headers is None:
            pairs: tuple[tuple[str, str], ...] = ()
        elif isinstance(headers, Mapping):
            pairs = tuple(headers.items())
        else:
            pairs = tuple(headers)
        return cls(method=method, url=url, headers=pairs, body=body)

    @classmethod
    def from_httpx(cls, request: httpx.Request) -> HttpRequest:
        """Snapshot an httpx request. The body must already be buffered."""
        return cls(
            method=request.method,
            url=str(request.url),
            headers=tuple(request.headers.multi_items()),
            body=request.content,
        )


@dataclass(frozen=True)
class SignedHeaders:
    """Header values to attach to the outbound request."""

    amz_date: str
    content_sha256: str
    authorization: str

    def as_dict(self) -> dict[str, str]:
        return {
            "X-Amz-Date": self.amz_date,
            "X-Amz-Content-Sha256": self.content_sha256,
            "Authorization": self.authorization,
        }


def format_timestamp(now: datetime) -> tuple[str, str]:
    """Return ``(YYYYMMDDThhmmssZ, YYYYMMDD)`` for *now* in UTC.

    Naive datetimes are taken to be UTC already.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    else:
        now = now.astimezone(UTC)
    return now.strftime("%Y%m%dT%H%M%SZ"), now.strftime("%Y%m%d")


def string_to_sign(amz_date: str, scope: str, canonical: str) -> str:
    return "\n".join([ALGORITHM, amz_date, scope, sha256_hex(canonical.encode("utf-8"))])


def compute_signature(signing_key: bytes, to_sign: str) -> str:
    return hmac_sha256(signing_key, to_sign).hex()


def render_authorization(access_id: str, scope: str, signed_headers: str, signature: str) -> str:
    return (
        f"{ALGORITHM} Credential={access_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def _split_url(url: str) -> tuple[str, str, str]:
    """Return ``(authority, path, raw_query)`` or raise EncodingError."""
    if not url or any(ord(c) < 0x21 or ord(c) == 0x7F for c in url):
        raise EncodingError(f"unparsable request URL: {url!r}")
    try:
        parts = urlsplit(url)
        parts.port  # noqa: B018 - validates the port component
    except ValueError as exc:
        raise EncodingError(f"unparsable request URL: {url!r}") from exc
    authority = parts.netloc.rpartition("@")[2]
    return authority, parts.path, parts.query


def sign(request: HttpRequest, credential: Credential, now: datetime) -> SignedHeaders:
    """Sign *request* for *credential* at time *now*.

    Steps:
    1. Validate credential and URL
    2. Render timestamps, ensure a host header
    3. Hash the payload and add the date/hash headers
    4. Canonicalize, build scope and string-to-sign
    5. Derive the key and render the authorization header

    Raises:
        ConfigurationError: a credential field is empty.
        EncodingError: the URL or a header cannot be canonicalized.
    """
    credential.validate()
    authority, path, query = _split_url(request.url)
    amz_date, date_stamp = format_timestamp(now)

    headers = [
        (name, value)
        for name, value in request.headers
        if name.strip().lower() not in _GENERATED
    ]
    if not any(n.strip().lower() == "host" and v.strip() for n, v in headers):
        if not authority:
            raise EncodingError(f"cannot derive host from URL: {request.url!r}")
        headers = [(n, v) for n, v in headers if n.strip().lower() != "host"]
        headers.append(("host", authority))

    body_hash = payload_hash(request.body)
    headers.append(("x-amz-date", amz_date))
    headers.append(("x-amz-content-sha256", body_hash))

    canonical = canonical_request(request.method, path, query, headers, body_hash)
    scope = credential_scope(date_stamp, credential.region, credential.service)
    to_sign = string_to_sign(amz_date, scope, canonical.render())
    signing_key = derive_signing_key(
        credential.secret, date_stamp, credential.region, credential.service
    )
    signature = compute_signature(signing_key, to_sign)

    logger.debug(
        "Signed %s %s scope=%s signed_headers=%s",
        canonical.method,
        canonical.uri,
        scope,
        canonical.signed_headers,
    )
    return SignedHeaders(
        amz_date=amz_date,
        content_sha256=body_hash,
        authorization=render_authorization(
            credential.access_id, scope, canonical.signed_headers, signature
        ),
    )


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SigV4Auth(httpx.Auth):
    """httpx auth hook that signs each request with the current time."""

    requires_request_body = True

    def __init__(
        self,
        credential: Credential,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        credential.validate()
        self._credential = credential
        self._clock = clock or _utcnow

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        signed = sign(HttpRequest.from_httpx(request), self._credential, self._clock())
        request.headers.update(signed.as_dict())
        yield request
