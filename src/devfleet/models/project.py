"""Project domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devfleet.config import DEFAULT_SHARED_NETWORK_NAME

CONFIG_FILE_NAME = "docker-git.json"
SCHEMA_VERSION = 1


class NetworkMode(str, Enum):
    """How a project's compose stack attaches to Docker networking."""

    SHARED = "shared"
    PROJECT = "project"


class TemplateConfig(BaseModel):
    """Per-project template settings persisted in docker-git.json."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    container_name: str = "dev-ssh"
    service_name: str = "dev"
    ssh_user: str = "dev"
    ssh_port: int = Field(default=2222, ge=1, le=65535)
    repo_url: str
    repo_ref: str = "main"
    fork_repo_url: str | None = None
    target_dir: str = "/home/dev/app"
    volume_name: str = "dev_home"
    authorized_keys_path: str = "./.docker-git/authorized_keys"
    env_global_path: str = "./.docker-git/.orch/env/global.env"
    env_project_path: str = "./.orch/env/project.env"
    docker_network_mode: NetworkMode = NetworkMode.SHARED
    docker_shared_network_name: str = DEFAULT_SHARED_NETWORK_NAME
    enable_mcp_playwright: bool = False

    @property
    def browser_container_name(self) -> str:
        return f"{self.container_name}-browser"


class ProjectConfig(BaseModel):
    """Versioned on-disk envelope of a project's template."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_version: Literal[1] = SCHEMA_VERSION
    template: TemplateConfig

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


@dataclass(slots=True)
class ProjectStatus:
    """A project directory together with its decoded config."""

    project_dir: Path
    config: ProjectConfig


@dataclass(slots=True)
class ProjectItem:
    """Flattened project view used for selection and deletion."""

    project_dir: Path
    display_name: str
    repo_url: str
    repo_ref: str
    container_name: str
    service_name: str
    ssh_user: str
    ssh_port: int
    target_dir: str
    shared_network_name: str = DEFAULT_SHARED_NETWORK_NAME


@dataclass(slots=True)
class CreateCommand:
    """Input payload for project creation."""

    config: TemplateConfig
    out_dir: Path
    run_up: bool = True
    force: bool = False
