from __future__ import annotations

from pathlib import Path

import pytest

from devfleet.core.docker import DockerCli
from devfleet.core.errors import DockerCommandError
from devfleet.core.networks import (
    NetworkManager,
    is_protected_network,
    resolve_compose_network_name,
)
from devfleet.models.project import NetworkMode
from tests.support.fake_runner import FakeProcessRunner
from tests.support.projects import make_template


def _manager(runner: FakeProcessRunner) -> NetworkManager:
    return NetworkManager(DockerCli(runner))


def test_resolve_compose_network_name_by_mode() -> None:
    shared = make_template(docker_shared_network_name="fleet-net")
    project = make_template(service_name="api", docker_network_mode=NetworkMode.PROJECT)

    assert resolve_compose_network_name(shared) == "fleet-net"
    assert resolve_compose_network_name(project) == "api-net"


def test_is_protected_network() -> None:
    assert is_protected_network("bridge", "docker-git-shared")
    assert is_protected_network("docker-git-shared", "docker-git-shared")
    assert not is_protected_network("dev-net", "docker-git-shared")


@pytest.mark.asyncio
async def test_ensure_shared_network_skips_existing(tmp_path: Path) -> None:
    runner = FakeProcessRunner()

    await _manager(runner).ensure_shared_network_ready(tmp_path, make_template())

    assert runner.commands() == [("network", "inspect", "docker-git-shared")]


@pytest.mark.asyncio
async def test_ensure_shared_network_creates_missing(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", exit_code=1, stderr="Error: No such network")

    await _manager(runner).ensure_shared_network_ready(tmp_path, make_template())

    assert runner.commands()[-1] == ("network", "create", "--driver", "bridge", "docker-git-shared")


@pytest.mark.asyncio
async def test_ensure_shared_network_tolerates_create_race(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", exit_code=1)
    runner.on(
        "network",
        "create",
        exit_code=1,
        stderr="Error response from daemon: network with name docker-git-shared already exists",
    )

    await _manager(runner).ensure_shared_network_ready(tmp_path, make_template())


@pytest.mark.asyncio
async def test_ensure_shared_network_raises_on_create_failure(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", exit_code=1)
    runner.on("network", "create", exit_code=1, stderr="pool overlaps")

    with pytest.raises(DockerCommandError):
        await _manager(runner).ensure_shared_network_ready(tmp_path, make_template())


@pytest.mark.asyncio
async def test_ensure_shared_network_noop_in_project_mode(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    template = make_template(docker_network_mode=NetworkMode.PROJECT)

    await _manager(runner).ensure_shared_network_ready(tmp_path, template)

    assert runner.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["bridge", "host", "none", "docker-git-shared"])
async def test_gc_never_touches_protected_networks(tmp_path: Path, name: str) -> None:
    runner = FakeProcessRunner()

    await _manager(runner).gc_network(tmp_path, name, "docker-git-shared")

    assert runner.calls == []


@pytest.mark.asyncio
async def test_gc_removes_detached_network(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", "-f", stdout="0\n")

    await _manager(runner).gc_network(tmp_path, "dev-net")

    assert runner.commands() == [
        ("network", "inspect", "-f", "{{len .Containers}}", "dev-net"),
        ("network", "rm", "dev-net"),
    ]


@pytest.mark.asyncio
async def test_gc_keeps_network_in_use(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", "-f", stdout="2\n")

    await _manager(runner).gc_network(tmp_path, "dev-net")

    assert runner.calls_with("network", "rm") == []


@pytest.mark.asyncio
async def test_gc_downgrades_failures_to_warnings(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", "-f", exit_code=1, stderr="No such network")

    await _manager(runner).gc_network(tmp_path, "dev-net")
    assert runner.calls_with("network", "rm") == []

    runner.on("network", "inspect", "-f", stdout="0")
    runner.on("network", "rm", exit_code=1, stderr="network has active endpoints")
    await _manager(runner).gc_network(tmp_path, "dev-net")


@pytest.mark.asyncio
async def test_gc_by_template_only_in_project_mode(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", "-f", stdout="0")
    manager = _manager(runner)

    await manager.gc_by_template(tmp_path, make_template(service_name="api"))
    assert runner.calls == []

    project = make_template(service_name="api", docker_network_mode=NetworkMode.PROJECT)
    await manager.gc_by_template(tmp_path, project)
    assert runner.commands()[-1] == ("network", "rm", "api-net")


@pytest.mark.asyncio
async def test_gc_by_service_name_uses_naming_convention(tmp_path: Path) -> None:
    runner = FakeProcessRunner()
    runner.on("network", "inspect", "-f", stdout="0")

    await _manager(runner).gc_by_service_name(tmp_path, "web", "docker-git-shared")

    assert runner.commands()[-1] == ("network", "rm", "web-net")
