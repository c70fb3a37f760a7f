"""Errors raised while signing a request.

Neither class is retryable: a bad credential or a request that cannot be
canonicalized fails the same way on every attempt.
"""

from __future__ import annotations

__all__ = ["ConfigurationError", "EncodingError", "SigningError"]


class SigningError(Exception):
    """Base class for request-signing failures."""


class ConfigurationError(SigningError):
    """A credential field is missing or empty."""


class EncodingError(SigningError):
    """The request URL or a header value cannot be canonicalized."""
