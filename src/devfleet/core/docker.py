"""Thin wrapper around the docker and docker compose CLIs."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from devfleet.core.errors import DockerCommandError
from devfleet.core.process_runner import CommandResult, ProcessRunner

COMPOSE_PREFIX = ("compose", "--ansi", "never", "--progress", "plain")
COMPOSE_PS_FORMAT = "{{.Name}}\t{{.Status}}\t{{.Ports}}\t{{.Image}}"
_PUBLISHED_HOST_PORT = re.compile(r":(\d+)->")


@dataclass(slots=True)
class ComposePsRow:
    """One service row from ``docker compose ps``."""

    name: str
    status: str
    ports: str
    image: str


def _cell(value: str) -> str:
    stripped = value.strip()
    return stripped if stripped else "-"


def parse_compose_ps_output(raw: str) -> list[ComposePsRow]:
    rows: list[ComposePsRow] = []
    for line in raw.splitlines():
        line = line.rstrip()
        if not line:
            continue
        cells = [*line.split("\t"), "", "", ""]
        rows.append(
            ComposePsRow(
                name=_cell(cells[0]),
                status=_cell(cells[1]),
                ports=_cell(cells[2]),
                image=_cell(cells[3]),
            )
        )
    return rows


def parse_published_host_ports(output: str) -> list[int]:
    """Decode host ports from the ``{{.Ports}}`` column, unique, in encounter order."""
    seen: set[int] = set()
    ports: list[int] = []
    for line in output.splitlines():
        for match in _PUBLISHED_HOST_PORT.finditer(line):
            value = int(match.group(1))
            if 0 < value <= 65535 and value not in seen:
                seen.add(value)
                ports.append(value)
    return ports


class DockerCli:
    """docker / docker compose invocations used by the lifecycle core."""

    def __init__(self, runner: ProcessRunner) -> None:
        self._runner = runner

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    async def info(self, cwd: Path, env: Mapping[str, str] | None = None) -> CommandResult:
        return await self._runner.run(cwd, "docker", ["info"], env=env)

    async def compose_up(self, cwd: Path) -> None:
        await self._compose(cwd, "up", "-d", "--build")

    async def compose_down(self, cwd: Path, *, volumes: bool = False) -> None:
        if volumes:
            await self._compose(cwd, "down", "-v")
        else:
            await self._compose(cwd, "down")

    async def compose_ps(self, cwd: Path) -> list[ComposePsRow]:
        result = await self._runner.run(
            cwd, "docker", [*COMPOSE_PREFIX, "ps", "--format", COMPOSE_PS_FORMAT]
        )
        if not result.ok:
            raise DockerCommandError(result.exit_code, "docker compose ps")
        return parse_compose_ps_output(result.stdout)

    async def inspect_bridge_ip(self, cwd: Path, container_name: str) -> str:
        result = await self._checked(
            cwd,
            "inspect",
            "-f",
            '{{with (index .NetworkSettings.Networks "bridge")}}{{.IPAddress}}{{end}}',
            container_name,
        )
        return result.stdout.strip()

    async def network_connect_bridge(self, cwd: Path, container_name: str) -> None:
        await self._checked(cwd, "network", "connect", "bridge", container_name)

    async def network_exists(self, cwd: Path, network_name: str) -> bool:
        result = await self._runner.run(cwd, "docker", ["network", "inspect", network_name])
        return result.ok

    async def network_create_bridge(self, cwd: Path, network_name: str) -> CommandResult:
        return await self._runner.run(
            cwd, "docker", ["network", "create", "--driver", "bridge", network_name]
        )

    async def network_container_count(self, cwd: Path, network_name: str) -> int:
        result = await self._checked(
            cwd, "network", "inspect", "-f", "{{len .Containers}}", network_name
        )
        try:
            return int(result.stdout.strip())
        except ValueError:
            return 0

    async def network_remove(self, cwd: Path, network_name: str) -> None:
        await self._checked(cwd, "network", "rm", network_name)

    async def published_host_ports(self, cwd: Path) -> list[int]:
        result = await self._checked(cwd, "ps", "--format", "{{.Ports}}")
        return parse_published_host_ports(result.stdout)

    async def remove_container(self, cwd: Path, container_name: str) -> None:
        await self._checked(cwd, "rm", "-f", container_name)

    async def _compose(self, cwd: Path, *args: str) -> None:
        exit_code = await self._runner.stream(cwd, "docker", [*COMPOSE_PREFIX, *args])
        if exit_code != 0:
            raise DockerCommandError(exit_code, f"docker compose {args[0]}")

    async def _checked(self, cwd: Path, *args: str) -> CommandResult:
        result = await self._runner.run(cwd, "docker", list(args))
        if not result.ok:
            raise DockerCommandError(result.exit_code, self._describe(args))
        return result

    @staticmethod
    def _describe(args: Sequence[str]) -> str:
        return " ".join(["docker", *args[:2]])
