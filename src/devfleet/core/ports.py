"""SSH port allocation across every project on the host."""

from __future__ import annotations

import errno
import socket
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from devfleet.config import DEFAULT_MAX_PORT_ATTEMPTS
from devfleet.core.errors import DockerCommandError, PortProbeError
from devfleet.logger import logger

if TYPE_CHECKING:
    from devfleet.core.docker import DockerCli
    from devfleet.core.registry import ProjectRegistry

MAX_PORT_ATTEMPTS = DEFAULT_MAX_PORT_ATTEMPTS
PUBLISHED_PORT_MARKER = "<docker:published>"
MAX_TCP_PORT = 65535

PortProbe = Callable[[int], bool]


@dataclass(slots=True)
class ReservedPort:
    """A port claimed by another project or by a running container."""

    port: int
    project_dir: str


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Bind ``host:port`` and release it; ``False`` only when the address is in use."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
    except OSError as exc:
        if exc.errno == errno.EADDRINUSE:
            return False
        raise PortProbeError(port, exc.strerror or str(exc)) from exc
    finally:
        sock.close()
    return True


def select_available_port(
    preferred: int,
    max_attempts: int,
    reserved: Iterable[int] = (),
    *,
    probe: PortProbe = is_port_available,
) -> int:
    attempts = max(1, max_attempts)
    blocked = set(reserved)
    last = min(preferred + attempts - 1, MAX_TCP_PORT)
    for port in range(preferred, last + 1):
        if port in blocked:
            continue
        if probe(port):
            return port
    raise PortProbeError(preferred, f"no available port in range [{preferred}, {last}]")


def _same_dir(left: Path, right: Path) -> bool:
    return left.resolve() == right.resolve()


async def load_reserved_ports(
    registry: ProjectRegistry,
    docker: DockerCli,
    exclude_dir: Path | None = None,
) -> list[ReservedPort]:
    seen: set[int] = set()
    reserved: list[ReservedPort] = []

    for status in registry.list_projects():
        if exclude_dir is not None and _same_dir(status.project_dir, exclude_dir):
            continue
        port = status.config.template.ssh_port
        if port in seen:
            continue
        seen.add(port)
        reserved.append(ReservedPort(port=port, project_dir=str(status.project_dir)))

    try:
        published = await docker.published_host_ports(registry.projects_root)
    except DockerCommandError as exc:
        logger.warning("Could not read published Docker ports", err=str(exc))
        published = []

    for port in published:
        if port in seen:
            continue
        seen.add(port)
        reserved.append(ReservedPort(port=port, project_dir=PUBLISHED_PORT_MARKER))

    return reserved


def describe_port_move(preferred: int, reserved: Iterable[ReservedPort]) -> str:
    """Reason shown when a preferred port has to be replaced."""
    if any(entry.port == preferred for entry in reserved):
        return "already reserved by another docker-git project"
    return "already in use"


async def resolve_ssh_port(
    preferred: int,
    registry: ProjectRegistry,
    docker: DockerCli,
    *,
    exclude_dir: Path | None = None,
    max_attempts: int = MAX_PORT_ATTEMPTS,
    probe: PortProbe = is_port_available,
) -> int:
    """Select a free SSH port and log when it differs from ``preferred``."""
    reserved = await load_reserved_ports(registry, docker, exclude_dir)
    selected = select_available_port(
        preferred,
        max_attempts,
        [entry.port for entry in reserved],
        probe=probe,
    )
    if selected != preferred:
        reason = describe_port_move(preferred, reserved)
        logger.warning(f"SSH port {preferred} is {reason}; using {selected} instead.")
    return selected
