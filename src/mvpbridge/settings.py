"""Application settings via environment variables."""

from __future__ import annotations

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings"]


class Settings(BaseSettings):
    """Credentials and runtime options. All values from environment.

    Cloud credentials use the providers' conventional variable names
    (``AWS_ACCESS_KEY_ID``, ``DIGITALOCEAN_TOKEN``...). Tool options use the
    ``MVPBRIDGE_`` prefix.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    # AWS Amplify
    aws_access_key_id: str = ""
    aws_secret_access_key: SecretStr = SecretStr("")
    aws_region: str = "us-east-1"

    # DigitalOcean App Platform
    digitalocean_token: SecretStr = SecretStr("")

    # GitHub access token handed to Amplify for repository access
    github_token: SecretStr = SecretStr("")

    # Logging
    log_level: str = Field(
        default="WARNING",
        validation_alias=AliasChoices("MVPBRIDGE_LOG_LEVEL", "log_level"),
    )
    log_json: bool = Field(
        default=False,
        validation_alias=AliasChoices("MVPBRIDGE_LOG_JSON", "log_json"),
    )
