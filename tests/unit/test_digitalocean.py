"""Tests for the DigitalOcean App Platform deployer."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from mvpbridge.deploy.digitalocean import (
    DOApp,
    DODeployer,
    build_app_spec,
    env_var_type,
    repo_path,
)
from mvpbridge.deploy.errors import DeployError
from mvpbridge.settings import Settings


def _deployer(handler: Any) -> DODeployer:
    return DODeployer(
        "demo",
        "https://github.com/user/demo.git",
        "main",
        "do-test-token",
        transport=httpx.MockTransport(handler),
    )


def _app(app_id: str, phase: str = "", **extra: Any) -> dict[str, Any]:
    app: dict[str, Any] = {"id": app_id, "spec": {"name": "demo"}, **extra}
    if phase:
        app["active_deployment"] = {"id": "dep-1", "phase": phase}
    return {"app": app}


class TestHelpers:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/user/demo",
            "https://github.com/user/demo.git",
            "http://github.com/user/demo",
            "git@github.com:user/demo.git",
        ],
    )
    def test_repo_path(self, url: str) -> None:
        assert repo_path(url) == "user/demo"

    @pytest.mark.parametrize(
        ("key", "kind"),
        [
            ("API_KEY", "SECRET"),
            ("DB_PASSWORD", "SECRET"),
            ("STRIPE_SECRET", "SECRET"),
            ("AUTH_TOKEN", "SECRET"),
            ("API_URL", "GENERAL"),
            ("NODE_ENV", "GENERAL"),
        ],
    )
    def test_env_var_type(self, key: str, kind: str) -> None:
        assert env_var_type(key) == kind

    def test_app_url_prefers_live_url(self) -> None:
        assert DOApp("a", default_ingress="x.ondigitalocean.app").url == (
            "https://x.ondigitalocean.app"
        )
        assert DOApp("a", default_ingress="x", live_url="https://live").url == "https://live"
        assert DOApp("a").url == ""


class TestBuildAppSpec:
    def test_static_site(self) -> None:
        spec = build_app_spec("demo", "https://github.com/user/demo", "main", True, {})
        assert spec["region"] == "nyc"
        assert "services" not in spec
        site = spec["static_sites"][0]
        assert site["github"] == {"repo": "user/demo", "branch": "main", "deploy_on_push": True}
        assert site["output_dir"] == "dist"
        assert "envs" not in site

    def test_service(self) -> None:
        spec = build_app_spec(
            "demo", "https://github.com/user/demo", "main", False, {"B": "2", "API_KEY": "k"}
        )
        service = spec["services"][0]
        assert service["dockerfile_path"] == "Dockerfile"
        assert service["http_port"] == 3000
        assert service["instance_size_slug"] == "basic-xxs"
        assert service["envs"] == [
            {"key": "API_KEY", "value": "k", "type": "SECRET"},
            {"key": "B", "value": "2", "type": "GENERAL"},
        ]


class TestDODeployer:
    def test_requires_token(self) -> None:
        with pytest.raises(DeployError, match="DIGITALOCEAN_TOKEN"):
            DODeployer("demo", "https://github.com/user/demo", "main", "")

    def test_from_settings_without_token(self) -> None:
        with pytest.raises(DeployError) as exc_info:
            DODeployer.from_settings(Settings(digitalocean_token=""), "demo", "repo")
        assert exc_info.value.status_code is None

    @pytest.mark.anyio
    async def test_create(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"apps": None})
            payload = _app("app-1", default_ingress="demo.ondigitalocean.app")
            return httpx.Response(200, json=payload)

        deployer = _deployer(handler)
        try:
            app = await deployer.deploy(True, {"API_URL": "https://api"})
        finally:
            await deployer.close()

        assert app.app_id == "app-1"
        assert app.url == "https://demo.ondigitalocean.app"
        assert [(r.method, r.url.path) for r in seen] == [("GET", "/v2/apps"), ("POST", "/v2/apps")]
        assert seen[0].headers["authorization"] == "Bearer do-test-token"
        body = json.loads(seen[1].content)
        assert body["spec"]["static_sites"][0]["github"]["repo"] == "user/demo"

    @pytest.mark.anyio
    async def test_update_existing(self) -> None:
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.url.path == "/v2/apps" and request.method == "GET":
                return httpx.Response(
                    200,
                    json={"apps": [{"id": "zzz", "spec": {"name": "other"}}, _app("app-9")["app"]]},
                )
            return httpx.Response(200, json=_app("app-9"))

        deployer = _deployer(handler)
        try:
            app = await deployer.deploy(False, {})
        finally:
            await deployer.close()

        assert app.app_id == "app-9"
        assert seen == [("GET", "/v2/apps"), ("GET", "/v2/apps/app-9"), ("PUT", "/v2/apps/app-9")]

    @pytest.mark.anyio
    async def test_api_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"id": "unauthorized"})

        deployer = _deployer(handler)
        try:
            with pytest.raises(DeployError) as exc_info:
                await deployer.find_app()
        finally:
            await deployer.close()
        assert exc_info.value.status_code == 401

    @pytest.mark.anyio
    async def test_wait_until_active(self) -> None:
        phases = iter(["PENDING_BUILD", "DEPLOYING", "ACTIVE"])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_app("app-1", next(phases)))

        deployer = _deployer(handler)
        try:
            app = await deployer.wait_for_deployment("app-1", timeout=5, interval=0)
        finally:
            await deployer.close()
        assert app.phase == "ACTIVE"

    @pytest.mark.anyio
    @pytest.mark.parametrize("phase", ["ERROR", "CANCELED"])
    async def test_wait_failure(self, phase: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_app("app-1", phase))

        deployer = _deployer(handler)
        try:
            with pytest.raises(DeployError, match=phase):
                await deployer.wait_for_deployment("app-1", timeout=5, interval=0)
        finally:
            await deployer.close()

    @pytest.mark.anyio
    async def test_wait_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_app("app-1", "BUILDING"))

        deployer = _deployer(handler)
        try:
            with pytest.raises(DeployError, match="timed out"):
                await deployer.wait_for_deployment("app-1", timeout=0.05, interval=0.01)
        finally:
            await deployer.close()

    @pytest.mark.anyio
    async def test_logs_are_plain_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v2/apps/app-1/deployments/dep-1/logs"
            return httpx.Response(200, text="build ok\n")

        deployer = _deployer(handler)
        try:
            assert await deployer.get_logs("app-1", "dep-1") == "build ok\n"
        finally:
            await deployer.close()
