"""Run settings loaded from the environment (and ``.env`` via the CLI)."""

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reel_relay.constants import (
    CLAIM_LEASE_SECONDS,
    CONTAINER_POLL_INTERVAL_SECONDS,
    CONTAINER_POLL_MAX_ATTEMPTS,
    DOWNLOADS_DIR_NAME,
    GRAPH_API_VERSION,
)
from reel_relay.errors import ConfigurationError
from reel_relay.instagram.models import InstagramConfig
from reel_relay.video.config import TranscodeOptions


class RunSettings(BaseSettings):
    """Everything one pipeline run needs to know about its account."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    db_path: Optional[Path] = Field(default=None, validation_alias="DB_PATH")
    account_name: str = Field(default="default", validation_alias="ACCOUNT_NAME")
    ig_access_token: Optional[SecretStr] = Field(default=None, validation_alias="IG_ACCESS_TOKEN")
    ig_user_id: Optional[str] = Field(default=None, validation_alias="IG_USER_ID")
    public_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PUBLIC_BASE_URL", "CLOUDFLARE_PUBLIC_URL"),
    )
    caption: str = Field(default="", validation_alias="CAPTION")
    logo_path: Optional[Path] = Field(default=None, validation_alias="LOGO_PATH")
    downloads_dir: Path = Field(default=Path(DOWNLOADS_DIR_NAME), validation_alias="DOWNLOADS_DIR")

    graph_api_version: str = Field(default=GRAPH_API_VERSION, validation_alias="GRAPH_API_VERSION")
    poll_max_attempts: int = Field(
        default=CONTAINER_POLL_MAX_ATTEMPTS, ge=1, validation_alias="POLL_MAX_ATTEMPTS"
    )
    poll_interval_seconds: float = Field(
        default=CONTAINER_POLL_INTERVAL_SECONDS, ge=0, validation_alias="POLL_INTERVAL_SECONDS"
    )
    claim_lease_seconds: int = Field(
        default=CLAIM_LEASE_SECONDS, ge=1, validation_alias="CLAIM_LEASE_SECONDS"
    )

    ffmpeg_path: str = Field(default="ffmpeg", validation_alias="FFMPEG_PATH")
    ffprobe_path: str = Field(default="ffprobe", validation_alias="FFPROBE_PATH")
    ytdlp_path: str = Field(default="yt-dlp", validation_alias="YTDLP_PATH")

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().rstrip("/") or None

    @field_validator("ig_user_id", "account_name")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if isinstance(value, str) else value

    def missing_fields(self) -> list[str]:
        """Environment names of required settings that are unset."""
        missing = []
        if not self.db_path:
            missing.append("DB_PATH")
        if not self.ig_access_token or not self.ig_access_token.get_secret_value():
            missing.append("IG_ACCESS_TOKEN")
        if not self.ig_user_id:
            missing.append("IG_USER_ID")
        if not self.public_base_url:
            missing.append("PUBLIC_BASE_URL")
        return missing

    @classmethod
    def _env_name(cls, field_name: str) -> str:
        alias = cls.model_fields[field_name].validation_alias
        if isinstance(alias, AliasChoices):
            alias = alias.choices[0]
        return alias if isinstance(alias, str) else field_name

    @classmethod
    def load(cls, **overrides: Any) -> "RunSettings":
        """Load from the environment and check required values.

        Raises:
            ConfigurationError: Invalid values, or required values missing
                (all of them are listed).
        """
        # Keyed by env name so an override beats the same variable from the environment
        values = {cls._env_name(k): v for k, v in overrides.items() if v is not None}
        try:
            settings = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        missing = settings.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                "Add them to the account's .env file or the environment."
            )
        return settings

    def instagram_config(self) -> InstagramConfig:
        return InstagramConfig(
            instagram_user_id=self.ig_user_id or "",
            access_token=self.ig_access_token.get_secret_value() if self.ig_access_token else "",
            api_version=self.graph_api_version,
            poll_max_attempts=self.poll_max_attempts,
            poll_interval_seconds=self.poll_interval_seconds,
        )

    def transcode_options(self) -> TranscodeOptions:
        return TranscodeOptions(ffmpeg_path=self.ffmpeg_path, ffprobe_path=self.ffprobe_path)
