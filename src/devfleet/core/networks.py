"""Shared-network provisioning and orphaned project-network cleanup."""

from __future__ import annotations

from pathlib import Path

from devfleet.config import DEFAULT_SHARED_NETWORK_NAME
from devfleet.core.docker import DockerCli
from devfleet.core.errors import DockerCommandError
from devfleet.logger import logger
from devfleet.models.project import NetworkMode, TemplateConfig

PROTECTED_NETWORK_NAMES = frozenset({"bridge", "host", "none"})


def is_protected_network(network_name: str, shared_network_name: str) -> bool:
    return network_name in PROTECTED_NETWORK_NAMES or network_name == shared_network_name


def project_network_name(service_name: str) -> str:
    return f"{service_name}-net"


def resolve_compose_network_name(template: TemplateConfig) -> str:
    if template.docker_network_mode is NetworkMode.SHARED:
        return template.docker_shared_network_name
    return project_network_name(template.service_name)


class NetworkManager:
    """Create the shared network on demand and remove empty project networks."""

    def __init__(self, docker: DockerCli) -> None:
        self._docker = docker

    async def ensure_shared_network_ready(self, cwd: Path, template: TemplateConfig) -> None:
        if template.docker_network_mode is not NetworkMode.SHARED:
            return
        network_name = template.docker_shared_network_name
        if await self._docker.network_exists(cwd, network_name):
            return

        logger.info("Creating shared Docker network", network=network_name)
        result = await self._docker.network_create_bridge(cwd, network_name)
        if result.ok or "already exists" in result.output.lower():
            return
        raise DockerCommandError(result.exit_code, "docker network create")

    async def gc_network(
        self,
        cwd: Path,
        network_name: str,
        shared_network_name: str = DEFAULT_SHARED_NETWORK_NAME,
    ) -> None:
        if is_protected_network(network_name, shared_network_name):
            return
        try:
            attached = await self._docker.network_container_count(cwd, network_name)
        except DockerCommandError as exc:
            logger.warning("Skipping network GC", network=network_name, err=str(exc))
            return

        if attached > 0:
            logger.debug("Network still in use", network=network_name, containers=attached)
            return

        try:
            await self._docker.network_remove(cwd, network_name)
        except DockerCommandError as exc:
            logger.warning("Failed to remove network", network=network_name, err=str(exc))
            return
        logger.info("Removed detached network", network=network_name)

    async def gc_by_template(self, cwd: Path, template: TemplateConfig) -> None:
        if template.docker_network_mode is not NetworkMode.PROJECT:
            return
        await self.gc_network(
            cwd,
            resolve_compose_network_name(template),
            template.docker_shared_network_name,
        )

    async def gc_by_service_name(
        self,
        cwd: Path,
        service_name: str,
        shared_network_name: str = DEFAULT_SHARED_NETWORK_NAME,
    ) -> None:
        await self.gc_network(cwd, project_network_name(service_name), shared_network_name)
