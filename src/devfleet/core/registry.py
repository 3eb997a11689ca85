"""Discovery of persisted projects under the projects root."""

from __future__ import annotations

import os
from pathlib import Path

from devfleet.core.config_store import read_project_config
from devfleet.core.errors import ConfigDecodeError, ConfigNotFoundError, FileSystemError
from devfleet.core.network_identity import format_repo_label
from devfleet.logger import logger
from devfleet.models.project import CONFIG_FILE_NAME, ProjectItem, ProjectStatus

SKIPPED_DIR_NAMES = frozenset({".git", ".orch", ".docker-git"})


def to_project_item(status: ProjectStatus) -> ProjectItem:
    template = status.config.template
    return ProjectItem(
        project_dir=status.project_dir,
        display_name=format_repo_label(template.repo_url),
        repo_url=template.repo_url,
        repo_ref=template.repo_ref,
        container_name=template.container_name,
        service_name=template.service_name,
        ssh_user=template.ssh_user,
        ssh_port=template.ssh_port,
        target_dir=template.target_dir,
        shared_network_name=template.docker_shared_network_name,
    )


class ProjectRegistry:
    """Enumerate projects by scanning for docker-git.json files."""

    def __init__(self, projects_root: Path) -> None:
        self._projects_root = projects_root

    @property
    def projects_root(self) -> Path:
        return self._projects_root

    def find_config_paths(self) -> list[Path]:
        if not self._projects_root.is_dir():
            return []
        found: list[Path] = []
        for current, dirnames, filenames in os.walk(self._projects_root):
            dirnames[:] = sorted(name for name in dirnames if name not in SKIPPED_DIR_NAMES)
            if CONFIG_FILE_NAME in filenames:
                found.append(Path(current) / CONFIG_FILE_NAME)
        return found

    def list_projects(self) -> list[ProjectStatus]:
        projects: list[ProjectStatus] = []
        for path in self.find_config_paths():
            project_dir = path.parent
            try:
                config = read_project_config(project_dir)
            except (ConfigNotFoundError, ConfigDecodeError, FileSystemError) as exc:
                logger.warning("Skipping project with unreadable config", path=str(path), err=str(exc))
                continue
            projects.append(ProjectStatus(project_dir=project_dir, config=config))
        return projects

    def list_items(self) -> list[ProjectItem]:
        return [to_project_item(status) for status in self.list_projects()]
