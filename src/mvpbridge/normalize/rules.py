"""Normalization rules: atomic fixes, each committed on its own."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from mvpbridge.detect import Framework, OutputType, detect_output_type
from mvpbridge.gitops.git import GitError, commit_all
from mvpbridge.normalize import templates

__all__ = [
    "NormalizeError",
    "Normalizer",
    "Outcome",
    "Rule",
    "RuleOutcome",
    "create_env_example",
    "gitignore_complete",
    "update_gitignore",
]

logger = logging.getLogger(__name__)

Committer = Callable[[Path, str], str]

_GITIGNORE_REQUIRED = ("node_modules", ".env", "dist", ".next")


class NormalizeError(Exception):
    """Raised when a rule fails to apply; later rules are not run."""


class Outcome(StrEnum):
    SATISFIED = "satisfied"
    APPLIED = "applied"
    WOULD_APPLY = "would_apply"


@dataclass(frozen=True)
class Rule:
    name: str
    description: str
    check: Callable[[Path], bool]
    apply: Callable[[Path], None]


@dataclass(frozen=True)
class RuleOutcome:
    rule: Rule
    outcome: Outcome
    commit_message: str = ""
    commit_error: str = ""


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def _write(path: Path, content: str, *, private: bool = False) -> None:
    """Write *content*; *private* files are restricted to the owner (0600)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if private:
        path.chmod(0o600)


def create_env_example(root: Path) -> None:
    """Write ``.env.example`` with the keys of ``.env`` and empty values.

    Comments and blank lines are kept. Without a ``.env`` a short default
    template is written.
    """
    env_path = root / ".env"
    if not env_path.is_file():
        _write(root / ".env.example", templates.DEFAULT_ENV_EXAMPLE, private=True)
        return

    lines: list[str] = []
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            lines.append(line)
            continue
        key, sep, _ = line.partition("=")
        if sep and key:
            lines.append(f"{key}=")
    _write(root / ".env.example", "\n".join(lines) + "\n", private=True)


def gitignore_complete(root: Path) -> bool:
    path = root / ".gitignore"
    if not path.is_file():
        return False
    content = path.read_text(encoding="utf-8")
    return all(entry in content for entry in _GITIGNORE_REQUIRED)


def update_gitignore(root: Path) -> None:
    """Append the standard entries that are not already present."""
    path = root / ".gitignore"
    existing = path.read_text(encoding="utf-8") if path.is_file() else ""

    to_add = [e for e in templates.GITIGNORE_ENTRIES if e.rstrip("/") not in existing]
    if not to_add:
        return

    content = existing
    if content and not content.endswith("\n"):
        content += "\n"
    content += "\n# Added by mvpbridge\n" + "\n".join(to_add) + "\n"
    _write(path, content)


def _exists(rel: str) -> Callable[[Path], bool]:
    return lambda root: (root / rel).exists()


def _writes(rel: str, content: str) -> Callable[[Path], None]:
    return lambda root: _write(root / rel, content)


def _write_next_dockerfile(root: Path) -> None:
    if detect_output_type(root, Framework.NEXTJS) is OutputType.STATIC:
        _write(root / "Dockerfile", templates.NEXT_STATIC_DOCKERFILE)
    else:
        _write(root / "Dockerfile", templates.NEXT_SSR_DOCKERFILE)


# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------


def universal_rules(target: str = "do") -> list[Rule]:
    return [
        Rule(
            name="Pin Node version",
            description=f"Pin Node version to {templates.NODE_VERSION}",
            check=_exists(".nvmrc"),
            apply=_writes(".nvmrc", f"{templates.NODE_VERSION}\n"),
        ),
        Rule(
            name="Add .env.example",
            description="Add .env.example template",
            check=_exists(".env.example"),
            apply=create_env_example,
        ),
        Rule(
            name="Update .gitignore",
            description="Update .gitignore with standard entries",
            check=gitignore_complete,
            apply=update_gitignore,
        ),
        Rule(
            name="Add GitHub Actions workflow",
            description="Add deployment workflow",
            check=_exists(".github/workflows/deploy.yml"),
            apply=_writes(".github/workflows/deploy.yml", templates.workflow_for_target(target)),
        ),
    ]


def vite_rules() -> list[Rule]:
    return [
        Rule(
            name="Add Vite Dockerfile",
            description="Add production Dockerfile for Vite",
            check=_exists("Dockerfile"),
            apply=_writes("Dockerfile", templates.VITE_DOCKERFILE),
        ),
        Rule(
            name="Add nginx config",
            description="Add nginx.conf for SPA routing",
            check=_exists("nginx.conf"),
            apply=_writes("nginx.conf", templates.NGINX_CONFIG),
        ),
    ]


def nextjs_rules() -> list[Rule]:
    return [
        Rule(
            name="Add Next.js Dockerfile",
            description="Add production Dockerfile for Next.js",
            check=_exists("Dockerfile"),
            apply=_write_next_dockerfile,
        ),
    ]


class Normalizer:
    """Applies unsatisfied rules in order, one git commit per rule."""

    def __init__(
        self,
        root: str | Path,
        framework: Framework,
        *,
        dry_run: bool = False,
        target: str = "do",
        committer: Committer | None = None,
    ) -> None:
        self.root = Path(root)
        self.framework = framework
        self.dry_run = dry_run
        self._commit = committer or commit_all

        self.rules = universal_rules(target)
        if framework is Framework.VITE:
            self.rules.extend(vite_rules())
        elif framework is Framework.NEXTJS:
            self.rules.extend(nextjs_rules())

    def run(
        self, on_outcome: Callable[[int, RuleOutcome], None] | None = None
    ) -> list[RuleOutcome]:
        """Apply every rule that is not yet satisfied.

        Args:
            on_outcome: Called with ``(index, outcome)`` as each rule finishes.

        Raises:
            NormalizeError: a rule failed to apply. Earlier commits stay.
        """
        outcomes: list[RuleOutcome] = []
        for i, rule in enumerate(self.rules, start=1):
            outcome = self._run_rule(rule)
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(i, outcome)
        return outcomes

    def _run_rule(self, rule: Rule) -> RuleOutcome:
        if rule.check(self.root):
            return RuleOutcome(rule, Outcome.SATISFIED)
        if self.dry_run:
            return RuleOutcome(rule, Outcome.WOULD_APPLY)

        try:
            rule.apply(self.root)
        except OSError as e:
            raise NormalizeError(f"{rule.name}: {e}") from e

        try:
            message = self._commit(self.root, rule.description)
        except GitError as e:
            logger.warning("Commit failed for %r: %s", rule.name, e)
            return RuleOutcome(rule, Outcome.APPLIED, commit_error=str(e))
        return RuleOutcome(rule, Outcome.APPLIED, commit_message=message)
