"""Project configuration stored at ``.mvpbridge/config.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from mvpbridge.detect import Framework, OutputType

if TYPE_CHECKING:
    from mvpbridge.detect import Detection

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ConfigError",
    "ConfigNotFoundError",
    "DeploySettings",
    "DetectedSettings",
    "ProjectConfig",
]

CONFIG_DIR = ".mvpbridge"
CONFIG_FILE = "config.yaml"

_FRAMEWORKS = {"vite", "nextjs"}
_TARGETS = {"do", "aws"}


class ConfigError(Exception):
    """Config file is unreadable or holds unsupported values."""


class ConfigNotFoundError(ConfigError):
    """No config file; ``mvpbridge init`` has not been run."""


class DetectedSettings(BaseModel):
    package_manager: str = ""
    build_command: str = ""
    output_dir: str = ""
    node_version: str = ""
    output_type: str = ""


class DeploySettings(BaseModel):
    app_name: str = ""
    region: str = ""


class ProjectConfig(BaseModel):
    version: int = 1
    framework: str = ""
    target: str = ""
    detected: DetectedSettings = Field(default_factory=DetectedSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)

    @staticmethod
    def path(root: str | Path) -> Path:
        return Path(root) / CONFIG_DIR / CONFIG_FILE

    @classmethod
    def load(cls, root: str | Path) -> ProjectConfig:
        path = cls.path(root)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigNotFoundError("config not found - run 'mvpbridge init' first") from e

        try:
            data: Any = yaml.safe_load(raw) or {}
            return cls.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigError(f"parsing config: {e}") from e

    def save(self, root: str | Path) -> Path:
        path = self.path(root)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(self.model_dump(), sort_keys=False, default_flow_style=False),
            encoding="utf-8",
        )
        path.chmod(0o600)
        return path

    @classmethod
    def from_detection(cls, detection: Detection, target: str) -> ProjectConfig:
        return cls(
            version=1,
            framework=str(detection.framework),
            target=target,
            detected=DetectedSettings(
                package_manager=str(detection.package_manager),
                build_command=detection.build_command,
                output_dir=detection.output_dir,
                node_version=detection.node_version,
                output_type=str(detection.output_type),
            ),
        )

    def validate_values(self) -> None:
        """Raise ConfigError for unsupported version, framework or target."""
        if self.version != 1:
            raise ConfigError(f"unsupported config version: {self.version}")
        if not self.framework:
            raise ConfigError("framework not set")
        if self.framework not in _FRAMEWORKS:
            raise ConfigError(f"unsupported framework: {self.framework}")
        if self.target and self.target not in _TARGETS:
            raise ConfigError(f"unsupported target: {self.target}")

    @property
    def is_static(self) -> bool:
        return self.detected.output_type == OutputType.STATIC

    @property
    def framework_enum(self) -> Framework:
        try:
            return Framework(self.framework)
        except ValueError:
            return Framework.UNKNOWN
