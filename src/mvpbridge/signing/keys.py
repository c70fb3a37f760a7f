"""Signing-key derivation.

The key is rebuilt from the secret on every request through a four-stage
HMAC chain. It is bound to one (date, region, service) scope and cannot be
reversed into the secret.
"""

from __future__ import annotations

from mvpbridge.signing.encoding import hmac_sha256

__all__ = ["KEY_PREFIX", "TERMINATOR", "credential_scope", "derive_signing_key"]

KEY_PREFIX = "AWS4"
TERMINATOR = "aws4_request"


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    """``YYYYMMDD/region/service/aws4_request``."""
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def derive_signing_key(secret: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the 32-byte signing key for one credential scope.

    Args:
        secret: Long-lived secret access key.
        date_stamp: UTC date as ``YYYYMMDD``.
        region: Region name, e.g. ``us-east-1``.
        service: Service name, e.g. ``amplify``.
    """
    k_date = hmac_sha256(f"{KEY_PREFIX}{secret}".encode(), date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)
