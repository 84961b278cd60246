"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from datetime import time
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ScheduleDefaults

ENV_PREFIX = "EVENT_SCHEDULING_"


class LoggingSettings(BaseModel):
    """Console logging configuration."""

    level: str = Field(default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    colors: bool = Field(default=True, description="Colorize the level name on the console")
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class SchedulingSettings(BaseSettings):
    """Engine settings with environment variable and YAML support.

    Priority: constructor arguments > environment > YAML > defaults.
    """

    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)

    # Recurrence
    max_occurrences: int = Field(default=24, description="Upper bound on generated occurrences")

    # Volunteer schedule fallback window
    default_time_in: time = Field(default=time(9, 0), description="Fallback check-in time")
    default_time_out: time = Field(default=time(17, 0), description="Fallback check-out time")

    # Attendance session cadence
    token_rotation_seconds: float = Field(default=30, description="Token re-issue interval")
    token_ttl_seconds: int = Field(default=30, description="Nominal token lifetime")
    count_poll_seconds: float = Field(default=10, description="Attendance count poll interval")
    countdown_tick_seconds: float = Field(default=1, description="Countdown decrement interval")

    # Attendance policy
    token_issue_lead_minutes: int = Field(
        default=15, description="How early before start tokens may be issued"
    )
    check_in_grace_minutes: int = Field(
        default=60, description="How long after the end check-ins are still accepted"
    )

    # Submission
    submit_concurrency: Optional[int] = Field(
        default=None, description="Max concurrent createEvent calls (None = unbounded)"
    )

    # Portal backend
    portal_base_url: str = Field(default="http://localhost:4000/", description="Portal API base URL")
    request_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")

    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "event_scheduling")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    def __init__(self, **kwargs: Any) -> None:
        env_vars_set = {
            key[len(ENV_PREFIX) :].lower().split("__")[0]
            for key in os.environ
            if key.startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set
        self._load_yaml_config()

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, checking the project directory first, then the user config dir."""
        project_config = Path(__file__).parent.parent / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _is_overridden(self, name: str) -> bool:
        return name in self._explicit_args or name in self._env_vars_set

    def _load_scheduling_config(self, config_data: dict) -> None:
        """Load top-level engine settings from YAML data."""
        settings = [
            "max_occurrences",
            "default_time_in",
            "default_time_out",
            "token_rotation_seconds",
            "token_ttl_seconds",
            "count_poll_seconds",
            "countdown_tick_seconds",
            "token_issue_lead_minutes",
            "check_in_grace_minutes",
            "submit_concurrency",
        ]
        for setting in settings:
            if setting in config_data and not self._is_overridden(setting):
                setattr(self, setting, config_data[setting])

    def _load_portal_config(self, config_data: dict) -> None:
        """Load portal connection settings from the ``portal`` YAML section."""
        if "portal" not in config_data:
            return

        portal_config = config_data["portal"]
        if "base_url" in portal_config and not self._is_overridden("portal_base_url"):
            self.portal_base_url = portal_config["base_url"]
        if "timeout" in portal_config and not self._is_overridden("request_timeout"):
            self.request_timeout = portal_config["timeout"]

    def _load_logging_config(self, config_data: dict) -> None:
        """Load logging configuration from YAML data."""
        if "logging" not in config_data or self._is_overridden("logging"):
            return

        logging_config = config_data["logging"]
        for setting in ["level", "colors", "third_party_level"]:
            if setting in logging_config:
                setattr(self.logging, setting, logging_config[setting])

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            self._load_scheduling_config(config_data)
            self._load_portal_config(config_data)
            self._load_logging_config(config_data)

        except (OSError, yaml.YAMLError) as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def schedule_defaults(self) -> ScheduleDefaults:
        """Fallback volunteer window as a schedule model."""
        return ScheduleDefaults(time_in=self.default_time_in, time_out=self.default_time_out)


# Global settings management
_settings_instance: Optional[SchedulingSettings] = None


def get_settings() -> SchedulingSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = SchedulingSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
