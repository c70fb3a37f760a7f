"""Read application environment variables from the project's ``.env``."""

from __future__ import annotations

from pathlib import Path

from dotenv import dotenv_values

__all__ = ["read_env_vars"]


def read_env_vars(root: str | Path) -> dict[str, str]:
    """Key/value pairs from ``<root>/.env``; empty when the file is absent.

    The process environment is not modified. Keys without a value map to "".
    """
    path = Path(root) / ".env"
    if not path.is_file():
        return {}
    return {key: value or "" for key, value in dotenv_values(path).items()}
