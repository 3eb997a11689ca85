"""Runtime settings for devfleet.

Values come from ``DOCKER_GIT_*`` environment variables or a ``.env`` file.

Usage::

    from devfleet.config import get_settings

    s = get_settings()
    print(s.projects_root)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SHARED_NETWORK_NAME = "docker-git-shared"
DEFAULT_MAX_PORT_ATTEMPTS = 25


def _default_projects_root() -> Path:
    return Path.home() / ".docker-git"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOCKER_GIT_",
        env_file=".env",
        extra="ignore",
    )

    projects_root: Path = Field(default_factory=_default_projects_root)
    max_port_attempts: int = DEFAULT_MAX_PORT_ATTEMPTS
    shared_network_name: str = DEFAULT_SHARED_NETWORK_NAME
    state_sync_enabled: bool = True

    @field_validator("projects_root", mode="before")
    @classmethod
    def _expand_projects_root(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return _default_projects_root()
            return Path(stripped).expanduser()
        if isinstance(value, Path):
            return value.expanduser()
        return value

    @field_validator("max_port_attempts")
    @classmethod
    def _clamp_attempts(cls, value: int) -> int:
        return max(1, value)

    @property
    def resolved_projects_root(self) -> Path:
        return self.projects_root.resolve()


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
