"""DigitalOcean App Platform deployer."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from mvpbridge.deploy.errors import DeployError

if TYPE_CHECKING:
    from mvpbridge.settings import Settings

__all__ = [
    "DOApp",
    "DODeployer",
    "build_app_spec",
    "env_var_type",
    "repo_path",
]

logger = logging.getLogger(__name__)

_API_BASE = "https://api.digitalocean.com/v2"
_DEFAULT_REGION = "nyc"
_SECRET_MARKERS = ("secret", "key", "password", "token")


@dataclass(frozen=True)
class DOApp:
    app_id: str
    default_ingress: str = ""
    live_url: str = ""
    deployment_id: str = ""
    phase: str = ""

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> DOApp:
        app = payload.get("app", {})
        active = app.get("active_deployment") or {}
        return cls(
            app_id=app.get("id", ""),
            default_ingress=app.get("default_ingress", ""),
            live_url=app.get("live_url", ""),
            deployment_id=active.get("id", ""),
            phase=active.get("phase", ""),
        )

    @property
    def url(self) -> str:
        if self.live_url:
            return self.live_url
        if self.default_ingress:
            return f"https://{self.default_ingress}"
        return ""


def repo_path(repo_url: str) -> str:
    """``https://github.com/owner/repo.git`` → ``owner/repo``."""
    path = repo_url.strip()
    for prefix in ("https://", "http://"):
        path = path.removeprefix(prefix)
    for prefix in ("github.com/", "git@github.com:"):
        path = path.removeprefix(prefix)
    return path.removesuffix(".git")


def env_var_type(key: str) -> str:
    lowered = key.lower()
    return "SECRET" if any(m in lowered for m in _SECRET_MARKERS) else "GENERAL"


def build_app_spec(
    app_name: str,
    repo_url: str,
    branch: str,
    is_static: bool,
    env_vars: dict[str, str],
) -> dict[str, Any]:
    """Build an App Platform spec for a static site or a Docker service."""
    github = {"repo": repo_path(repo_url), "branch": branch, "deploy_on_push": True}
    envs = [
        {"key": key, "value": value, "type": env_var_type(key)}
        for key, value in sorted(env_vars.items())
    ]

    spec: dict[str, Any] = {"name": app_name, "region": _DEFAULT_REGION}
    if is_static:
        component: dict[str, Any] = {
            "name": app_name,
            "github": github,
            "build_command": "npm run build",
            "output_dir": "dist",
        }
        key = "static_sites"
    else:
        component = {
            "name": app_name,
            "github": github,
            "dockerfile_path": "Dockerfile",
            "source_dir": "/",
            "http_port": 3000,
            "instance_count": 1,
            "instance_size_slug": "basic-xxs",
        }
        key = "services"
    if envs:
        component["envs"] = envs
    spec[key] = [component]
    return spec


class DODeployer:
    """Creates or updates an App Platform app from a GitHub repository."""

    def __init__(
        self,
        app_name: str,
        repo_url: str,
        branch: str,
        token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise DeployError("DIGITALOCEAN_TOKEN environment variable not set")
        self.app_name = app_name
        self.repo_url = repo_url
        self.branch = branch
        self._client = httpx.AsyncClient(
            base_url=_API_BASE,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            transport=transport,
            timeout=30.0,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        app_name: str,
        repo_url: str,
        branch: str = "main",
        **kwargs: Any,
    ) -> DODeployer:
        return cls(
            app_name,
            repo_url,
            branch,
            settings.digitalocean_token.get_secret_value(),
            **kwargs,
        )

    async def _send(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=body)
        except httpx.HTTPError as e:
            raise DeployError(f"DigitalOcean unreachable: {e}") from e
        if not resp.is_success:
            raise DeployError(
                f"DigitalOcean API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp

    async def _request(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        resp = await self._send(method, path, body)
        try:
            data: dict[str, Any] = resp.json()
        except ValueError as e:
            raise DeployError(f"parsing DigitalOcean response: {e}") from e
        return data

    async def find_app(self) -> DOApp | None:
        """Look up the app by spec name. Returns None when it does not exist."""
        listing = await self._request("GET", "/apps")
        for app in listing.get("apps") or []:
            if app.get("spec", {}).get("name") == self.app_name:
                return await self.get_app(app["id"])
        return None

    async def get_app(self, app_id: str) -> DOApp:
        return DOApp.from_response(await self._request("GET", f"/apps/{app_id}"))

    async def deploy(self, is_static: bool, env_vars: dict[str, str]) -> DOApp:
        """Update the app if it exists, otherwise create it."""
        existing = await self.find_app()
        spec = build_app_spec(self.app_name, self.repo_url, self.branch, is_static, env_vars)
        if existing is not None:
            logger.info("Updating DigitalOcean app %s (%s)", existing.app_id, self.app_name)
            payload = await self._request("PUT", f"/apps/{existing.app_id}", {"spec": spec})
        else:
            logger.info("Creating DigitalOcean app %s", self.app_name)
            payload = await self._request("POST", "/apps", {"spec": spec})
        return DOApp.from_response(payload)

    async def wait_for_deployment(
        self,
        app_id: str,
        timeout: float = 600.0,
        interval: float = 10.0,
    ) -> DOApp:
        """Poll until the active deployment is ACTIVE.

        Raises DeployError on ERROR/CANCELED or when *timeout* elapses.
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            app = await self.get_app(app_id)
            if app.phase == "ACTIVE":
                return app
            if app.phase in ("ERROR", "CANCELED"):
                raise DeployError(f"deployment failed: {app.phase}")
            logger.info("Deployment status: %s", app.phase or "PENDING")
            await asyncio.sleep(interval)
        raise DeployError(f"deployment timed out after {timeout:.0f}s")

    async def get_logs(self, app_id: str, deployment_id: str) -> str:
        resp = await self._send("GET", f"/apps/{app_id}/deployments/{deployment_id}/logs")
        return resp.text

    async def close(self) -> None:
        await self._client.aclose()
