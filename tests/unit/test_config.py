"""Tests for the project config file."""

from __future__ import annotations

from pathlib import Path

import pytest

from mvpbridge.config import ConfigError, ConfigNotFoundError, ProjectConfig
from mvpbridge.detect import Framework, detect_all


class TestProjectConfig:
    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigNotFoundError, match="mvpbridge init"):
            ProjectConfig.load(tmp_path)

    def test_round_trip_from_detection(self, vite_project: Path) -> None:
        cfg = ProjectConfig.from_detection(detect_all(vite_project), "aws")
        path = cfg.save(vite_project)

        assert path == vite_project / ".mvpbridge" / "config.yaml"
        assert path.stat().st_mode & 0o777 == 0o600
        loaded = ProjectConfig.load(vite_project)
        assert loaded == cfg
        assert loaded.framework_enum is Framework.VITE
        assert loaded.is_static
        assert loaded.detected.output_dir == "dist"

    def test_partial_file(self, tmp_path: Path) -> None:
        path = ProjectConfig.path(tmp_path)
        path.parent.mkdir()
        path.write_text("framework: nextjs\ndeploy:\n  region: eu-west-1\n")
        cfg = ProjectConfig.load(tmp_path)
        assert cfg.version == 1
        assert cfg.deploy.region == "eu-west-1"
        assert cfg.target == ""

    def test_empty_file(self, tmp_path: Path) -> None:
        path = ProjectConfig.path(tmp_path)
        path.parent.mkdir()
        path.write_text("")
        assert ProjectConfig.load(tmp_path) == ProjectConfig()

    @pytest.mark.parametrize("content", ["framework: [unclosed\n", "version: not-a-number\n"])
    def test_invalid(self, tmp_path: Path, content: str) -> None:
        path = ProjectConfig.path(tmp_path)
        path.parent.mkdir()
        path.write_text(content)
        with pytest.raises(ConfigError, match="parsing config"):
            ProjectConfig.load(tmp_path)

    def test_validate_values(self) -> None:
        ProjectConfig(framework="vite", target="do").validate_values()
        with pytest.raises(ConfigError, match="version"):
            ProjectConfig(version=2, framework="vite").validate_values()
        with pytest.raises(ConfigError, match="framework not set"):
            ProjectConfig().validate_values()
        with pytest.raises(ConfigError, match="unsupported framework"):
            ProjectConfig(framework="remix").validate_values()
        with pytest.raises(ConfigError, match="unsupported target"):
            ProjectConfig(framework="vite", target="gcp").validate_values()

    def test_unknown_framework_enum(self) -> None:
        assert ProjectConfig(framework="remix").framework_enum is Framework.UNKNOWN
