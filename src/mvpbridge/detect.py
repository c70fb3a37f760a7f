"""Project detection: framework, tooling and deployment-readiness issues."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

__all__ = [
    "Detection",
    "Framework",
    "Issue",
    "OutputType",
    "PackageManager",
    "check_missing_files",
    "detect_all",
    "detect_build_config",
    "detect_framework",
    "detect_node_version",
    "detect_output_type",
    "detect_package_manager",
]

logger = logging.getLogger(__name__)

_NEXT_CONFIGS = ("next.config.js", "next.config.mjs", "next.config.ts")
_VITE_CONFIGS = ("vite.config.js", "vite.config.ts", "vite.config.mjs")
_EXPORT_MARKERS = ('output: "export"', "output: 'export'")


class Framework(StrEnum):
    VITE = "vite"
    NEXTJS = "nextjs"
    UNKNOWN = "unknown"


class OutputType(StrEnum):
    STATIC = "static"
    SSR = "ssr"


class PackageManager(StrEnum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


@dataclass(frozen=True)
class Issue:
    """A deployment-readiness problem found during inspection."""

    code: str
    description: str
    fixable: bool


@dataclass
class Detection:
    framework: Framework = Framework.UNKNOWN
    output_type: OutputType = OutputType.STATIC
    package_manager: PackageManager = PackageManager.NPM
    node_version: str = ""
    build_command: str = ""
    output_dir: str = ""
    issues: list[Issue] = field(default_factory=list)


def _read_package_json(root: Path) -> dict[str, Any] | None:
    try:
        data = json.loads((root / "package.json").read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError):
        logger.warning("Unreadable package.json in %s", root, exc_info=True)
        return None
    return data if isinstance(data, dict) else None


def detect_framework(root: Path) -> Framework:
    """Config files first (Next.js is more specific), then dependencies."""
    if any((root / name).exists() for name in _NEXT_CONFIGS):
        return Framework.NEXTJS
    if any((root / name).exists() for name in _VITE_CONFIGS):
        return Framework.VITE

    pkg = _read_package_json(root)
    if pkg is not None:
        if "next" in (pkg.get("dependencies") or {}):
            return Framework.NEXTJS
        if "vite" in (pkg.get("devDependencies") or {}):
            return Framework.VITE
    return Framework.UNKNOWN


def detect_package_manager(root: Path) -> PackageManager:
    if (root / "pnpm-lock.yaml").exists():
        return PackageManager.PNPM
    if (root / "yarn.lock").exists():
        return PackageManager.YARN
    return PackageManager.NPM


def detect_node_version(root: Path) -> str:
    """Pinned Node version from ``.nvmrc`` or ``engines.node``; "" if unpinned."""
    nvmrc = root / ".nvmrc"
    if nvmrc.is_file():
        return nvmrc.read_text(encoding="utf-8").strip()

    pkg = _read_package_json(root)
    if pkg is not None:
        return str((pkg.get("engines") or {}).get("node", ""))
    return ""


def detect_build_config(root: Path, framework: Framework) -> tuple[str, str]:
    """Return ``(build_command, output_dir)``."""
    pkg = _read_package_json(root)
    if pkg is None:
        return "", ""

    build_cmd = str((pkg.get("scripts") or {}).get("build", ""))
    if framework is Framework.VITE:
        output_dir = "dist"
    elif framework is Framework.NEXTJS:
        output_dir = "out" if "export" in build_cmd else ".next"
    else:
        output_dir = ""
    return build_cmd, output_dir


def detect_output_type(root: Path, framework: Framework) -> OutputType:
    """Vite builds are static; Next.js is static only with ``output: 'export'``."""
    if framework is not Framework.NEXTJS:
        return OutputType.STATIC
    for name in ("next.config.js", "next.config.mjs"):
        path = root / name
        if path.is_file():
            content = path.read_text(encoding="utf-8")
            if any(marker in content for marker in _EXPORT_MARKERS):
                return OutputType.STATIC
    return OutputType.SSR


def check_missing_files(root: Path) -> list[Issue]:
    checks = [
        ("Dockerfile", "MISSING_DOCKERFILE", "Missing Dockerfile"),
        (".env.example", "MISSING_ENV_EXAMPLE", "No .env.example"),
        (".github/workflows", "MISSING_GHA", "No GitHub Actions workflow"),
        (".gitignore", "MISSING_GITIGNORE", "No .gitignore"),
    ]
    return [
        Issue(code=code, description=description, fixable=True)
        for rel, code, description in checks
        if not (root / rel).exists()
    ]


def detect_all(root: str | Path) -> Detection:
    """Run every detector against *root* and collect issues."""
    root = Path(root)
    d = Detection()

    d.framework = detect_framework(root)
    if d.framework is Framework.UNKNOWN:
        d.issues.append(Issue("UNKNOWN_FRAMEWORK", "Could not detect framework", fixable=False))

    d.package_manager = detect_package_manager(root)

    d.node_version = detect_node_version(root)
    if not d.node_version:
        d.issues.append(Issue("NODE_NOT_PINNED", "Node version not pinned", fixable=True))

    d.build_command, d.output_dir = detect_build_config(root, d.framework)
    d.output_type = detect_output_type(root, d.framework)
    d.issues.extend(check_missing_files(root))

    logger.debug("Detected %s (%s) with %d issues", d.framework, d.output_type, len(d.issues))
    return d
