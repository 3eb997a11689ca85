from __future__ import annotations

import json
from pathlib import Path

import pytest

from devfleet.core.errors import ProjectFileExistsError
from devfleet.core.network_identity import derive_network_identity
from devfleet.core.templates import ProjectFileWriter, plan_files, render_docker_compose
from devfleet.models.project import NetworkMode
from tests.support.projects import make_template


def test_plan_files_lists_managed_files() -> None:
    specs = plan_files(make_template())

    assert [spec.relative_path for spec in specs] == [
        "Dockerfile",
        "docker-compose.yml",
        ".dockerignore",
        "docker-git.json",
        ".gitignore",
        ".orch/env",
    ]
    assert specs[-1].is_dir


def test_plan_files_adds_browser_dockerfile() -> None:
    specs = plan_files(make_template(enable_mcp_playwright=True))

    assert "Dockerfile.browser" in [spec.relative_path for spec in specs]


def test_compose_binds_ssh_port_to_loopback() -> None:
    compose = render_docker_compose(make_template(ssh_port=2345))

    assert '"127.0.0.1:2345:22"' in compose


def test_compose_shared_mode_uses_external_network() -> None:
    compose = render_docker_compose(make_template(docker_shared_network_name="fleet"))

    assert "      - fleet\n" in compose
    assert "  fleet:\n    external: true\n" in compose


def test_compose_project_mode_pins_identity() -> None:
    url = "https://github.com/org/repo.git"
    identity = derive_network_identity(url)

    compose = render_docker_compose(
        make_template(url, service_name="dev", docker_network_mode=NetworkMode.PROJECT)
    )

    assert f"ipv4_address: {identity.ip_address}" in compose
    assert f"- subnet: {identity.subnet}" in compose
    assert "- docker.org.repo" in compose
    assert "  dev-net:\n    driver: bridge\n" in compose


def test_compose_browser_sidecar() -> None:
    compose = render_docker_compose(make_template(container_name="box", enable_mcp_playwright=True))

    assert "container_name: box-browser" in compose
    assert "MCP_PLAYWRIGHT_CDP_ENDPOINT" in compose


def test_writer_refuses_to_overwrite_without_force(tmp_path: Path) -> None:
    writer = ProjectFileWriter()
    writer.write(tmp_path, make_template())

    with pytest.raises(ProjectFileExistsError) as exc_info:
        writer.write(tmp_path, make_template())

    assert exc_info.value.path.parent == tmp_path


def test_writer_force_overwrites(tmp_path: Path) -> None:
    writer = ProjectFileWriter()
    writer.write(tmp_path, make_template(ssh_port=2222))

    written = writer.write(tmp_path, make_template(ssh_port=2299), force=True)

    payload = json.loads((tmp_path / "docker-git.json").read_text(encoding="utf-8"))
    assert payload["template"]["sshPort"] == 2299
    assert (tmp_path / ".orch" / "env").is_dir()
    assert tmp_path / "docker-compose.yml" in written
