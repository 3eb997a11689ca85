"""Project lifecycle orchestration: create, up, down, down-all and delete."""

from __future__ import annotations

import shutil
from collections.abc import Awaitable, Callable
from pathlib import Path

from devfleet.config import Settings, get_settings
from devfleet.core.config_store import read_project_config
from devfleet.core.daemon_access import DaemonAccessGuard
from devfleet.core.docker import DockerCli
from devfleet.core.errors import DockerAccessError, DockerCommandError, FileSystemError
from devfleet.core.network_identity import format_repo_label
from devfleet.core.networks import NetworkManager
from devfleet.core.paths import is_within_projects_root, localize_host_paths, resolve_root_path
from devfleet.core.ports import MAX_PORT_ATTEMPTS, PortProbe, is_port_available, resolve_ssh_port
from devfleet.core.process_runner import ProcessRunner
from devfleet.core.registry import ProjectRegistry
from devfleet.core.state_sync import GitStateSync, NullStateSync, StateSync
from devfleet.core.templates import ProjectFileWriter
from devfleet.logger import logger
from devfleet.models.project import CreateCommand, ProjectConfig, ProjectItem, TemplateConfig

ConfigEnricher = Callable[[TemplateConfig], Awaitable[TemplateConfig]]


async def keep_config(config: TemplateConfig) -> TemplateConfig:
    return config


def _existing_dir(path: Path) -> Path:
    for candidate in (path, *path.parents):
        if candidate.is_dir():
            return candidate
    return Path.cwd()


class ProjectOrchestrator:
    """Drive a project's compose stack through its lifecycle."""

    def __init__(
        self,
        projects_root: Path,
        docker: DockerCli,
        *,
        registry: ProjectRegistry | None = None,
        guard: DaemonAccessGuard | None = None,
        networks: NetworkManager | None = None,
        writer: ProjectFileWriter | None = None,
        state_sync: StateSync | None = None,
        enrich_config: ConfigEnricher = keep_config,
        max_port_attempts: int = MAX_PORT_ATTEMPTS,
        port_probe: PortProbe = is_port_available,
        shared_network_name: str | None = None,
    ) -> None:
        self._projects_root = projects_root
        self._docker = docker
        self._registry = registry or ProjectRegistry(projects_root)
        self._guard = guard or DaemonAccessGuard(docker)
        self._networks = networks or NetworkManager(docker)
        self._writer = writer or ProjectFileWriter()
        self._state_sync = state_sync or NullStateSync()
        self._enrich_config = enrich_config
        self._max_port_attempts = max_port_attempts
        self._port_probe = port_probe
        self._shared_network_name = shared_network_name

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
    ) -> ProjectOrchestrator:
        resolved = settings or get_settings()
        process_runner = runner or ProcessRunner()
        root = resolved.resolved_projects_root
        state_sync: StateSync = (
            GitStateSync(root, process_runner) if resolved.state_sync_enabled else NullStateSync()
        )
        return cls(
            root,
            DockerCli(process_runner),
            state_sync=state_sync,
            max_port_attempts=resolved.max_port_attempts,
            shared_network_name=resolved.shared_network_name,
        )

    @property
    def projects_root(self) -> Path:
        return self._projects_root

    async def create(self, command: CreateCommand) -> ProjectConfig:
        root = self._projects_root
        out_dir = resolve_root_path(root, command.out_dir)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileSystemError(root, exc.strerror or str(exc)) from exc

        if command.run_up:
            await self._guard.ensure(root)

        template = localize_host_paths(self._apply_defaults(command.config), out_dir, root)
        ssh_port = await self._select_port(template.ssh_port, out_dir)
        template = template.model_copy(update={"ssh_port": ssh_port})
        template = await self._enrich_config(template)

        self._writer.write(out_dir, template, force=command.force)
        logger.info("Created project files", out_dir=str(out_dir))

        if command.run_up:
            if command.force:
                logger.info("Force enabled: wiping docker compose volumes (docker compose down -v)...")
                await self._docker.compose_down(out_dir, volumes=True)
            await self.up(out_dir)

        await self._state_sync.auto_sync(
            f"chore(state): update {format_repo_label(template.repo_url)}"
        )
        return ProjectConfig(template=template)

    async def up(self, project_dir: Path) -> TemplateConfig:
        """Start the stack, reassigning the SSH port unless it is already running.

        The project config is read before the daemon check, so a missing or
        invalid ``docker-git.json`` is reported even when Docker is unreachable.
        """
        template = read_project_config(project_dir).template
        await self._guard.ensure(project_dir)

        running = await self._docker.compose_ps(project_dir)
        if running:
            logger.debug("Stack already running; keeping SSH port", port=template.ssh_port)
        else:
            ssh_port = await self._select_port(template.ssh_port, project_dir)
            if ssh_port != template.ssh_port:
                template = template.model_copy(update={"ssh_port": ssh_port})

        self._writer.write(project_dir, template, force=True)
        await self._networks.ensure_shared_network_ready(project_dir, template)

        logger.info("Running: docker compose up -d --build", project=str(project_dir))
        await self._docker.compose_up(project_dir)

        await self._ensure_bridge_access(project_dir, template.container_name)
        if template.enable_mcp_playwright:
            await self._ensure_bridge_access(project_dir, template.browser_container_name)

        logger.info("Docker environment is up", project=str(project_dir), ssh_port=template.ssh_port)
        return template

    async def down(self, project_dir: Path) -> None:
        template = read_project_config(project_dir).template
        await self._guard.ensure(project_dir)
        await self._docker.compose_down(project_dir)
        await self._networks.gc_by_template(project_dir, template)

    async def down_all(self) -> None:
        projects = self._registry.list_projects()
        if not projects:
            logger.info("No docker-git projects found", root=str(self._projects_root))
            return

        await self._guard.ensure(_existing_dir(self._projects_root))
        for status in projects:
            logger.info(f"Project: {status.project_dir}")
            try:
                await self._docker.compose_down(status.project_dir)
            except DockerCommandError as exc:
                logger.warning(
                    "docker compose down failed; continuing",
                    project=str(status.project_dir),
                    exit_code=exc.exit_code,
                )
                continue
            await self._networks.gc_by_template(status.project_dir, status.config.template)

    async def delete(self, item: ProjectItem) -> None:
        root = self._projects_root.resolve()
        target = item.project_dir.resolve()
        if not is_within_projects_root(target, root):
            logger.warning(f"Refusing to delete path outside projects root: {target}")
            return

        try:
            await self._guard.ensure(_existing_dir(target))
        except DockerAccessError as exc:
            logger.warning("Docker is unreachable; deleting files only", err=exc.render())
            docker_ready = False
        else:
            docker_ready = True

        removed = False
        if target.is_dir():
            if docker_ready:
                await self._stop_for_delete(target, item)
            try:
                shutil.rmtree(target)
            except OSError as exc:
                raise FileSystemError(target, exc.strerror or str(exc)) from exc
            removed = True
            logger.info("Deleted project directory", project=str(target))
        else:
            logger.warning(f"Project directory already missing: {target}")

        if docker_ready:
            await self._networks.gc_by_service_name(
                _existing_dir(target), item.service_name, item.shared_network_name
            )
        if removed:
            await self._state_sync.auto_sync(
                f"chore(state): delete {format_repo_label(item.repo_url)}"
            )

    def _apply_defaults(self, config: TemplateConfig) -> TemplateConfig:
        # a network name set explicitly on the template wins over the configured default
        explicit = "docker_shared_network_name" in config.model_fields_set
        if self._shared_network_name is None or explicit:
            return config
        return config.model_copy(update={"docker_shared_network_name": self._shared_network_name})

    async def _select_port(self, preferred: int, project_dir: Path) -> int:
        return await resolve_ssh_port(
            preferred,
            self._registry,
            self._docker,
            exclude_dir=project_dir,
            max_attempts=self._max_port_attempts,
            probe=self._port_probe,
        )

    async def _ensure_bridge_access(self, cwd: Path, container_name: str) -> None:
        try:
            bridge_ip = await self._docker.inspect_bridge_ip(cwd, container_name)
            if not bridge_ip:
                await self._docker.network_connect_bridge(cwd, container_name)
        except DockerCommandError as exc:
            logger.warning(
                f"Failed to connect {container_name} to bridge network", err=str(exc)
            )

    async def _stop_for_delete(self, target: Path, item: ProjectItem) -> None:
        try:
            await self._docker.compose_down(target, volumes=True)
        except DockerCommandError as exc:
            logger.warning("docker compose down -v failed before delete", err=str(exc))
            await self._remove_container(target, item.container_name)
            await self._remove_container(target, f"{item.container_name}-browser")

    async def _remove_container(self, cwd: Path, container_name: str) -> None:
        try:
            await self._docker.remove_container(cwd, container_name)
        except DockerCommandError as exc:
            logger.warning(f"docker rm -f fallback failed for {container_name}", err=str(exc))
            return
        logger.info(f"Removed container: {container_name}")
