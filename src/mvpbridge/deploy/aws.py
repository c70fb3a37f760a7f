"""AWS Amplify deployer. Every call signed with SigV4."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
import yaml

from mvpbridge.deploy.errors import DeployError
from mvpbridge.signing.sigv4 import Credential, SigV4Auth

if TYPE_CHECKING:
    from mvpbridge.settings import Settings

__all__ = ["AmplifyApp", "AmplifyDeployer", "DEFAULT_REGION", "SERVICE", "build_spec"]

logger = logging.getLogger(__name__)

SERVICE = "amplify"
DEFAULT_REGION = "us-east-1"
_API_BASE = "https://amplify.{region}.amazonaws.com"

# SPA fallback: unknown paths serve index.html with a 200
SPA_REWRITE_RULE: dict[str, str] = {
    "source": "/<*>",
    "target": "/index.html",
    "status": "404-200",
}


@dataclass(frozen=True)
class AmplifyApp:
    app_id: str
    name: str
    default_domain: str
    repository: str

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> AmplifyApp:
        app = payload.get("app", {})
        return cls(
            app_id=app.get("appId", ""),
            name=app.get("name", ""),
            default_domain=app.get("defaultDomain", ""),
            repository=app.get("repository", ""),
        )


def build_spec(build_command: str = "", output_dir: str = "") -> str:
    """Render the Amplify build specification as YAML."""
    spec = {
        "version": 1,
        "frontend": {
            "phases": {
                "preBuild": {"commands": ["npm ci"]},
                "build": {"commands": [build_command or "npm run build"]},
            },
            "artifacts": {
                "baseDirectory": output_dir or "dist",
                "files": ["**/*"],
            },
            "cache": {"paths": ["node_modules/**/*"]},
        },
    }
    return yaml.safe_dump(spec, sort_keys=False, default_flow_style=False)


class AmplifyDeployer:
    """Creates or updates an Amplify app connected to a GitHub repository."""

    def __init__(
        self,
        app_name: str,
        repo_url: str,
        branch: str,
        credential: Credential,
        github_token: str = "",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.app_name = app_name
        self.repo_url = repo_url
        self.branch = branch
        self.region = credential.region
        self._github_token = github_token
        self._client = httpx.AsyncClient(
            base_url=_API_BASE.format(region=credential.region),
            headers={"Content-Type": "application/json"},
            auth=SigV4Auth(credential, clock=clock),
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
        region: str = "",
        **kwargs: Any,
    ) -> AmplifyDeployer:
        """Build a deployer from environment credentials.

        Raises ConfigurationError when the AWS keys are not set.
        """
        credential = Credential.from_settings(
            settings, SERVICE, region=region or settings.aws_region or DEFAULT_REGION
        )
        return cls(
            app_name,
            repo_url,
            branch,
            credential,
            github_token=settings.github_token.get_secret_value(),
            **kwargs,
        )

    async def _request(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, json=body)
        except httpx.HTTPError as e:
            raise DeployError(f"Amplify unreachable: {e}") from e

        if not resp.is_success:
            raise DeployError(
                f"Amplify API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        try:
            data: dict[str, Any] = resp.json()
        except ValueError as e:
            raise DeployError(f"parsing Amplify response: {e}") from e
        return data

    async def find_app(self) -> AmplifyApp | None:
        """Look up the app by name. Returns None when it does not exist."""
        listing = await self._request("GET", "/apps")
        for app in listing.get("apps", []):
            if app.get("name") == self.app_name:
                return await self.get_app(app["appId"])
        return None

    async def get_app(self, app_id: str) -> AmplifyApp:
        return AmplifyApp.from_response(await self._request("GET", f"/apps/{app_id}"))

    async def deploy(
        self,
        is_static: bool,
        env_vars: dict[str, str],
        build_command: str = "",
        output_dir: str = "",
    ) -> AmplifyApp:
        """Update the app if it exists, otherwise create it and its branch."""
        existing = await self.find_app()
        if existing is not None:
            logger.info("Updating Amplify app %s (%s)", existing.app_id, self.app_name)
            return await self._update_app(existing.app_id, env_vars, build_command, output_dir)
        logger.info("Creating Amplify app %s in %s", self.app_name, self.region)
        return await self._create_app(is_static, env_vars, build_command, output_dir)

    async def _create_app(
        self,
        is_static: bool,
        env_vars: dict[str, str],
        build_command: str,
        output_dir: str,
    ) -> AmplifyApp:
        if not self._github_token:
            raise DeployError("GITHUB_TOKEN environment variable required for AWS Amplify")

        body: dict[str, Any] = {
            "name": self.app_name,
            "repository": self.repo_url,
            "platform": "WEB",
            "environmentVariables": env_vars,
            "buildSpec": build_spec(build_command, output_dir),
            "accessToken": self._github_token,
        }
        if is_static:
            body["customRules"] = [dict(SPA_REWRITE_RULE)]

        app = AmplifyApp.from_response(await self._request("POST", "/apps", body))
        await self._create_branch(app.app_id, env_vars)
        return app

    async def _update_app(
        self,
        app_id: str,
        env_vars: dict[str, str],
        build_command: str,
        output_dir: str,
    ) -> AmplifyApp:
        body = {
            "environmentVariables": env_vars,
            "buildSpec": build_spec(build_command, output_dir),
        }
        return AmplifyApp.from_response(await self._request("POST", f"/apps/{app_id}", body))

    async def _create_branch(self, app_id: str, env_vars: dict[str, str]) -> None:
        await self._request(
            "POST",
            f"/apps/{app_id}/branches",
            {
                "branchName": self.branch,
                "enableAutoBuild": True,
                "stage": "PRODUCTION",
                "environmentVariables": env_vars,
            },
        )

    async def close(self) -> None:
        await self._client.aclose()
