"""
DevLoop Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


class WatchTarget(BaseModel):
    """A named group of directories to watch, with its own excludes."""

    name: str
    roots: list[Path] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    poll_interval_ms: int = Field(default=2000, ge=10, le=60000)
    quiet_period_ms: int = Field(default=500, ge=10, le=10000)
    targets: list[WatchTarget] = Field(
        default_factory=list,
        description="Watch targets; a default source target is used when empty",
    )


class BuildSettings(BaseSettings):
    """External build invocation settings."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    executable: str = Field(default="./gradlew", description="Build tool to run")
    tasks: Annotated[list[str], NoDecode] = Field(
        default=["build"], description="Fixed build arguments"
    )
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Project properties forwarded as -Pkey=value",
    )
    project_dir: Path = Field(default=Path("."))

    @field_validator("tasks", mode="before")
    @classmethod
    def parse_tasks(cls, v: str | list[str]) -> list[str]:
        """Parse build tasks from comma-separated string or list."""
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


class ReloadSettings(BaseSettings):
    """Target service reload API settings."""

    model_config = SettingsConfigDict(env_prefix="RELOAD_")

    base_url: str = Field(default="http://localhost:8090")
    username: str = Field(default="admin")
    password: str = Field(default="admin")
    plugin_name: str = Field(default="", description="Plugin to hot-reload")
    initialize_path: str = Field(default="/apis/api.console.halo.run/v1alpha1/system/initialize")
    reload_path: str = Field(
        default="/apis/api.console.halo.run/v1alpha1/plugins/{name}/reload",
        description="Reload endpoint; {name} is replaced with the plugin name",
    )
    request_timeout: float = Field(default=30.0, ge=1.0)

    @field_validator("reload_path")
    @classmethod
    def check_reload_path(cls, v: str) -> str:
        """Ensure {name} is the only placeholder in the reload path."""
        try:
            v.format(name="plugin")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"reload_path may only contain the {{name}} placeholder: {v!r}"
            ) from e
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    reload: ReloadSettings = Field(default_factory=ReloadSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
