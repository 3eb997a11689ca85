"""Generated project files and the writer that lays them out on disk."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from devfleet.core.errors import FileSystemError, ProjectFileExistsError
from devfleet.core.network_identity import derive_network_identity
from devfleet.core.networks import resolve_compose_network_name
from devfleet.logger import logger
from devfleet.models.project import CONFIG_FILE_NAME, NetworkMode, ProjectConfig, TemplateConfig

COMPOSE_FILE_NAME = "docker-compose.yml"
BROWSER_DOCKERFILE_NAME = "Dockerfile.browser"
BROWSER_CDP_PORT = 9223


@dataclass(frozen=True, slots=True)
class FileSpec:
    """A file (``contents`` set) or directory (``contents`` is ``None``) to create."""

    relative_path: str
    contents: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.contents is None


def _render_network_attachment(config: TemplateConfig, network_name: str) -> str:
    if config.docker_network_mode is NetworkMode.PROJECT:
        identity = derive_network_identity(config.repo_url)
        return (
            "    networks:\n"
            f"      {network_name}:\n"
            f"        ipv4_address: {identity.ip_address}\n"
            "        aliases:\n"
            f"          - {identity.dns_hostname}\n"
        )
    return f"    networks:\n      - {network_name}\n"


def _render_networks_section(config: TemplateConfig, network_name: str) -> str:
    if config.docker_network_mode is NetworkMode.PROJECT:
        identity = derive_network_identity(config.repo_url)
        return (
            "networks:\n"
            f"  {network_name}:\n"
            "    driver: bridge\n"
            "    ipam:\n"
            "      config:\n"
            f"        - subnet: {identity.subnet}\n"
        )
    return f"networks:\n  {network_name}:\n    external: true\n"


def render_docker_compose(config: TemplateConfig) -> str:
    network_name = resolve_compose_network_name(config)
    browser_service = f"{config.service_name}-browser"
    browser_volume = f"{config.volume_name}-browser"

    playwright_env = ""
    depends_on = ""
    browser_block = ""
    browser_volume_block = ""
    if config.enable_mcp_playwright:
        playwright_env = (
            '      MCP_PLAYWRIGHT_ENABLE: "1"\n'
            f'      MCP_PLAYWRIGHT_CDP_ENDPOINT: "http://{browser_service}:{BROWSER_CDP_PORT}"\n'
        )
        depends_on = f"    depends_on:\n      - {browser_service}\n"
        browser_block = (
            f"\n  {browser_service}:\n"
            "    build:\n"
            "      context: .\n"
            f"      dockerfile: {BROWSER_DOCKERFILE_NAME}\n"
            f"    container_name: {config.browser_container_name}\n"
            '    shm_size: "2gb"\n'
            "    expose:\n"
            f'      - "{BROWSER_CDP_PORT}"\n'
            "    volumes:\n"
            f"      - {browser_volume}:/data\n"
            f"    networks:\n      - {network_name}\n"
        )
        browser_volume_block = f"  {browser_volume}:\n"

    return (
        "services:\n"
        f"  {config.service_name}:\n"
        "    build: .\n"
        f"    container_name: {config.container_name}\n"
        "    environment:\n"
        f'      REPO_URL: "{config.repo_url}"\n'
        f'      REPO_REF: "{config.repo_ref}"\n'
        f'      FORK_REPO_URL: "{config.fork_repo_url or ""}"\n'
        f'      TARGET_DIR: "{config.target_dir}"\n'
        f"{playwright_env}"
        f"{depends_on}"
        "    env_file:\n"
        f"      - {config.env_global_path}\n"
        f"      - {config.env_project_path}\n"
        "    ports:\n"
        f'      - "127.0.0.1:{config.ssh_port}:22"\n'
        "    volumes:\n"
        f"      - {config.volume_name}:/home/{config.ssh_user}\n"
        f"      - {config.authorized_keys_path}:/authorized_keys:ro\n"
        f"{_render_network_attachment(config, network_name)}"
        f"{browser_block}"
        "\n"
        f"{_render_networks_section(config, network_name)}"
        "\n"
        "volumes:\n"
        f"  {config.volume_name}:\n"
        f"{browser_volume_block}"
    )


def render_dockerfile(config: TemplateConfig) -> str:
    return (
        "FROM ubuntu:24.04\n"
        "\n"
        "RUN apt-get update \\\n"
        "    && apt-get install -y --no-install-recommends openssh-server git ca-certificates \\\n"
        "    && rm -rf /var/lib/apt/lists/*\n"
        "\n"
        f"RUN useradd -m -s /bin/bash {config.ssh_user} && mkdir -p /run/sshd\n"
        "\n"
        "EXPOSE 22\n"
        'CMD ["/usr/sbin/sshd", "-D", "-e"]\n'
    )


def render_browser_dockerfile() -> str:
    return (
        "FROM mcr.microsoft.com/playwright:v1.48.0-noble\n"
        "\n"
        f"EXPOSE {BROWSER_CDP_PORT}\n"
        f'CMD ["npx", "-y", "playwright", "run-server", "--port", "{BROWSER_CDP_PORT}", '
        '"--host", "0.0.0.0"]\n'
    )


def render_dockerignore() -> str:
    return "# docker-git build context\n.orch/\nauthorized_keys\n"


def render_gitignore() -> str:
    return (
        "# docker-git project files\n"
        "# Committed to the docker-git state repository; keep that repository private.\n"
    )


def render_config_json(config: TemplateConfig) -> str:
    return ProjectConfig(template=config).to_json()


def plan_files(config: TemplateConfig) -> list[FileSpec]:
    files = [
        FileSpec("Dockerfile", render_dockerfile(config)),
        FileSpec(COMPOSE_FILE_NAME, render_docker_compose(config)),
        FileSpec(".dockerignore", render_dockerignore()),
        FileSpec(CONFIG_FILE_NAME, render_config_json(config)),
        FileSpec(".gitignore", render_gitignore()),
    ]
    if config.enable_mcp_playwright:
        files.append(FileSpec(BROWSER_DOCKERFILE_NAME, render_browser_dockerfile()))
    files.append(FileSpec(".orch/env"))
    return files


class ProjectFileWriter:
    """Materialize a file plan inside a project directory."""

    def write(self, out_dir: Path, config: TemplateConfig, *, force: bool = False) -> list[Path]:
        specs = plan_files(config)
        if not force:
            for spec in specs:
                target = out_dir / spec.relative_path
                if not spec.is_dir and target.exists():
                    raise ProjectFileExistsError(target)

        created: list[Path] = []
        for spec in specs:
            target = out_dir / spec.relative_path
            try:
                if spec.is_dir:
                    target.mkdir(parents=True, exist_ok=True)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_text(spec.contents or "", encoding="utf-8")
            except OSError as exc:
                raise FileSystemError(target, exc.strerror or str(exc)) from exc
            created.append(target)

        logger.debug("Wrote project files", out_dir=str(out_dir), count=len(created))
        return created
