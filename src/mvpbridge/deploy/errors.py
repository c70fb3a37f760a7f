"""Typed errors for deployment API clients."""

from __future__ import annotations

__all__ = ["DeployError"]


class DeployError(Exception):
    """Raised when a platform API is unreachable or rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
