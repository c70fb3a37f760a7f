"""mvpbridge CLI: inspect, normalize and deploy a frontend repository.

Subcommands:

* ``init``       detect the project and write ``.mvpbridge/config.yaml``
* ``inspect``    read-only deployment-readiness report
* ``normalize``  apply fixes, one git commit per fix
* ``deploy``     deploy to DigitalOcean (``do``) or AWS Amplify (``aws``)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from mvpbridge.config import ConfigError, ConfigNotFoundError, ProjectConfig
from mvpbridge.deploy.aws import AmplifyDeployer
from mvpbridge.deploy.digitalocean import DODeployer
from mvpbridge.deploy.envfile import read_env_vars
from mvpbridge.deploy.errors import DeployError
from mvpbridge.detect import Detection, Framework, detect_all
from mvpbridge.gitops.git import GitError, is_git_repo, remote_url, tool_available
from mvpbridge.logging import configure_logging, get_logger, new_run_id
from mvpbridge.normalize.rules import NormalizeError, Normalizer, Outcome, RuleOutcome
from mvpbridge.settings import Settings
from mvpbridge.signing.errors import SigningError

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)

_BOX_WIDTH = 49
_FRAMEWORK_NAMES = {Framework.VITE: "Vite", Framework.NEXTJS: "Next.js"}


class CLIError(Exception):
    """User-facing failure; printed without a traceback."""


def _version() -> str:
    try:
        return version("mvpbridge")
    except PackageNotFoundError:
        return "0.0.0"


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


def run_init(root: Path, target: str, framework: str) -> int:
    print("Initializing MVPBridge...")
    checks = [
        ("Git installed", lambda: tool_available("git"), "git not installed"),
        ("Inside git repo", lambda: is_git_repo(root), "not a git repository"),
        ("Node.js present", lambda: tool_available("node"), "node not installed"),
    ]
    for name, check, failure in checks:
        if not check():
            print(f"  Checking {name}... ✗")
            raise CLIError(f"{name}: {failure}")
        print(f"  Checking {name}... ✓")

    detection = detect_all(root)
    if not framework:
        framework = str(detection.framework)
        print(f"\n  Detected framework: {framework}")

    cfg = ProjectConfig.from_detection(detection, target or "do")
    cfg.framework = framework
    cfg.save(root)
    print("\n✓ MVPBridge initialized. Run `mvpbridge inspect` next.")
    return 0


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


def _clip(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _row(text: str) -> str:
    return f"│  {_clip(text, _BOX_WIDTH - 2):<{_BOX_WIDTH - 2}}│"


def render_report(d: Detection) -> str:
    """Boxed inspection report for *d*."""
    rule = "─" * _BOX_WIDTH
    lines = [f"╭{rule}╮", _row("MVPBridge Inspection Report"), f"├{rule}┤"]
    lines.append(_row(f"Framework:     {_FRAMEWORK_NAMES.get(d.framework, 'Unknown')}"))
    node = f"{d.node_version} (pinned)" if d.node_version else "Not pinned"
    lines.append(_row(f"Node:          {node}"))
    lines.append(_row(f"Package Mgr:   {d.package_manager}"))
    if d.build_command:
        lines.append(_row(f"Build:         {_clip(f'{d.build_command} → {d.output_dir}', 32)}"))
    lines.append(_row(f"Output Type:   {d.output_type}"))
    lines.append(f"├{rule}┤")

    if not d.issues:
        lines.append(_row("✓ Ready for deployment!"))
    else:
        lines.append(_row(f"Deployment Readiness: {len(d.issues)} issues found"))
        lines.append(_row(""))
        lines.extend(_row(f"✗ {_clip(issue.description, 44)}") for issue in d.issues)
        lines.append(_row(""))
        lines.append(_row("Run `mvpbridge normalize` to fix these."))
    lines.append(f"╰{rule}╯")
    return "\n".join(lines)


def run_inspect(root: Path, verbose: bool) -> int:
    d = detect_all(root)
    print()
    print(render_report(d))
    if verbose:
        for issue in d.issues:
            fix = "fixable" if issue.fixable else "manual"
            print(f"  {issue.code:<22} {fix}")
    print()
    return 0


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


def _print_outcome(index: int, total: int, result: RuleOutcome) -> None:
    name = result.rule.name
    if result.outcome is Outcome.SATISFIED:
        print(f"[{index}/{total}] {name} - already satisfied ✓")
        return
    print(f"[{index}/{total}] {name}")
    if result.outcome is Outcome.WOULD_APPLY:
        print(f"      → Would commit: [mvpbridge] {result.rule.description}")
    elif result.commit_error:
        print(f"      → Commit error: {result.commit_error}")
    else:
        print(f"      → Committed: {result.commit_message}")
    print()


def run_normalize(root: Path, dry_run: bool, yes: bool) -> int:
    try:
        cfg = ProjectConfig.load(root)
    except ConfigNotFoundError:
        cfg = ProjectConfig.from_detection(detect_all(root), "do")

    if dry_run:
        print("Dry run mode - no changes will be made\n")
    elif not yes:
        print("This will create git commits for each normalization step.")
        try:
            answer = input("Continue? [y/N]: ").strip().lower()
        except EOFError:
            answer = ""
        if answer not in ("y", "yes"):
            raise CLIError("cancelled by user")

    print("Normalizing repository...\n")
    normalizer = Normalizer(root, cfg.framework_enum, dry_run=dry_run, target=cfg.target or "do")
    total = len(normalizer.rules)
    normalizer.run(on_outcome=lambda i, result: _print_outcome(i, total, result))

    if dry_run:
        print("✓ Dry run complete. Run without --dry-run to apply changes.")
    else:
        print("✓ Normalization complete.\n  Run `mvpbridge inspect` to verify.")
    return 0


# ---------------------------------------------------------------------------
# deploy
# ---------------------------------------------------------------------------


def _app_name(cfg: ProjectConfig, repo_url: str) -> str:
    if cfg.deploy.app_name:
        return cfg.deploy.app_name
    return repo_url.rstrip("/").rsplit("/", 1)[-1] or "mvpbridge-app"


async def deploy_digitalocean(
    root: Path, cfg: ProjectConfig, settings: Settings, *, wait: bool = False
) -> None:
    print("Deploying to DigitalOcean...\n")
    repo_url = remote_url(root)
    deployer = DODeployer.from_settings(settings, _app_name(cfg, repo_url), repo_url)
    try:
        print("[1/4] Validating credentials... ✓")
        env_vars = read_env_vars(root)
        print("[2/4] Creating app spec... ✓")
        print(f"[3/4] Configuring secrets ({len(env_vars)} vars)... ✓")
        app = await deployer.deploy(cfg.is_static, env_vars)
        print("[4/4] Triggering deployment... ✓\n")
        print("Deployment started!")
        if wait and app.app_id:
            app = await deployer.wait_for_deployment(app.app_id)
            print("Deployment is live.")
    finally:
        await deployer.close()

    if app.url:
        print(f"  App URL: {app.url}")
    if app.app_id:
        print(f"  Dashboard: https://cloud.digitalocean.com/apps/{app.app_id}")


async def deploy_aws(root: Path, cfg: ProjectConfig, settings: Settings) -> None:
    print("Deploying to AWS Amplify...\n")
    repo_url = remote_url(root)
    deployer = AmplifyDeployer.from_settings(
        settings, _app_name(cfg, repo_url), repo_url, region=cfg.deploy.region
    )
    try:
        print("[1/3] Validating credentials... ✓")
        env_vars = read_env_vars(root)
        print(f"[2/3] Configuring environment ({len(env_vars)} vars)... ✓")
        app = await deployer.deploy(
            cfg.is_static,
            env_vars,
            build_command=cfg.detected.build_command,
            output_dir=cfg.detected.output_dir,
        )
        print("[3/3] Connecting branch... ✓\n")
    finally:
        await deployer.close()

    print("Deployment started!")
    if app.default_domain:
        print(f"  App URL: https://{deployer.branch}.{app.default_domain}")
    if app.app_id:
        print(
            f"  Console: https://{deployer.region}.console.aws.amazon.com/amplify/home"
            f"?region={deployer.region}#/{app.app_id}"
        )


def run_deploy(root: Path, target: str | None, wait: bool, settings: Settings) -> int:
    cfg = ProjectConfig.load(root)
    cfg.validate_values()
    target = target or cfg.target or "do"

    if target == "do":
        asyncio.run(deploy_digitalocean(root, cfg, settings, wait=wait))
    elif target == "aws":
        asyncio.run(deploy_aws(root, cfg, settings))
    else:
        raise CLIError(f"unknown target: {target} (supported: do, aws)")
    return 0


# ---------------------------------------------------------------------------
# entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mvpbridge",
        description="Bridge your MVP to production: inspect, normalize and deploy.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("-C", "--root", default=".", help="repository root (default: .)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="initialize MVPBridge in the current repo")
    p_init.add_argument("-t", "--target", default="", choices=["", "do", "aws"])
    p_init.add_argument("-f", "--framework", default="", choices=["", "vite", "nextjs"])

    p_inspect = sub.add_parser("inspect", help="report deployment readiness")
    p_inspect.add_argument("-v", "--verbose", action="store_true")

    p_norm = sub.add_parser("normalize", help="apply fixes to make the repo deployable")
    p_norm.add_argument("--dry-run", action="store_true", help="preview without changes")
    p_norm.add_argument("-y", "--yes", action="store_true", help="skip confirmation")

    p_deploy = sub.add_parser("deploy", help="deploy to a target platform")
    p_deploy.add_argument("target", nargs="?", help="do (DigitalOcean) or aws (Amplify)")
    p_deploy.add_argument("--wait", action="store_true", help="wait until the app is live")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(json_output=settings.log_json, level=settings.log_level)
    new_run_id()
    get_logger().debug("command_started", command=args.command)

    root = Path(args.root)
    try:
        if args.command == "init":
            return run_init(root, args.target, args.framework)
        if args.command == "inspect":
            return run_inspect(root, args.verbose)
        if args.command == "normalize":
            return run_normalize(root, args.dry_run, args.yes)
        return run_deploy(root, args.target, args.wait, settings)
    except (
        CLIError,
        ConfigError,
        DeployError,
        GitError,
        NormalizeError,
        SigningError,
    ) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
