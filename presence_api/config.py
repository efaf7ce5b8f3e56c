"""Process configuration loaded from environment variables."""

import os
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from presence_api.utils.errors import ConfigError


REQUIRED_ENV = ("DISCORD_TOKEN", "GUILD_ID", "USER_IDS")


def _env_flag(value: Optional[str], default: bool) -> bool:
    """Parse a boolean environment flag ("true"/"1"/"yes")."""
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "1", "yes")


class BotConfig(BaseModel):
    """Settings for the Discord bot, the task workflow and the HTTP API."""
    discord_token: str = Field(..., description="Bot token")
    guild_id: str = Field(..., description="Guild whose roster and tasks are served")
    user_ids: list[str] = Field(..., description="Roster member ids reported by /api/presence")
    todo_channel_id: Optional[str] = Field(None, description="Designated task channel id")
    enforce_task_channel: bool = Field(default=True, description="Restrict task commands to the task channel")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    public_read: bool = Field(default=False, description="Serve /api without x-api-key")
    api_key: Optional[str] = Field(None, description="Shared secret expected in x-api-key")
    cache_seconds: float = Field(default=20, description="Presence cache window")
    task_timezone: str = Field(default="UTC", description="Timezone for due dates given without offset")
    tasks_table: str = Field(default="guild_tasks", description="Supabase table holding tasks")

    @field_validator("user_ids")
    @classmethod
    def _require_roster(cls, value: list[str]) -> list[str]:
        ids = [v.strip() for v in value if v and v.strip()]
        if not ids:
            raise ValueError("USER_IDS must name at least one member id")
        return ids

    @field_validator("cache_seconds")
    @classmethod
    def _non_negative_window(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("task_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown TASK_TIMEZONE: {value}") from e
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.task_timezone)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BotConfig":
        """
        Build the configuration from environment variables.

        Raises ConfigError naming every missing required variable, or wrapping
        the validation error for malformed values.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV if not (env.get(name) or "").strip()]
        if missing:
            raise ConfigError(f"Missing env: {', '.join(missing)}")

        raw = {
            "discord_token": env["DISCORD_TOKEN"].strip(),
            "guild_id": env["GUILD_ID"].strip(),
            "user_ids": env["USER_IDS"].split(","),
            "todo_channel_id": (env.get("TODO_CHANNEL_ID") or "").strip() or None,
            "enforce_task_channel": _env_flag(env.get("ENFORCE_TASK_CHANNEL"), True),
            "host": env.get("HOST", "0.0.0.0"),
            "port": env.get("PORT", "3000"),
            "public_read": _env_flag(env.get("PUBLIC_READ"), False),
            "api_key": (env.get("API_KEY") or "").strip() or None,
            "cache_seconds": env.get("CACHE_SECONDS", "20"),
            "task_timezone": env.get("TASK_TIMEZONE", "UTC"),
            "tasks_table": env.get("TASKS_TABLE", "guild_tasks"),
        }

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
