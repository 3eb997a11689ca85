"""Typed failures raised by the project lifecycle core and their rendering."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorTag(str, Enum):
    """Closed set of failure kinds surfaced to callers."""

    PORT_PROBE = "PortProbeError"
    DOCKER_ACCESS = "DockerAccessError"
    DOCKER_COMMAND = "DockerCommandError"
    FILE_EXISTS = "FileExistsError"
    FILE_SYSTEM = "FileSystemError"
    CONFIG_NOT_FOUND = "ConfigNotFoundError"
    CONFIG_DECODE = "ConfigDecodeError"


class DockerAccessIssue(str, Enum):
    """Why the Docker daemon could not be reached."""

    PERMISSION_DENIED = "PermissionDenied"
    DAEMON_UNAVAILABLE = "DaemonUnavailable"


class DevfleetError(Exception):
    """Base class for lifecycle failures."""

    tag: ErrorTag

    def render(self) -> str:
        return str(self)


class PortProbeError(DevfleetError):
    tag = ErrorTag.PORT_PROBE

    def __init__(self, port: int, message: str) -> None:
        super().__init__(f"port {port}: {message}")
        self.port = port
        self.message = message

    def render(self) -> str:
        return f"SSH port check failed for {self.port}: {self.message}"


class DockerAccessError(DevfleetError):
    tag = ErrorTag.DOCKER_ACCESS

    def __init__(self, issue: DockerAccessIssue, details: str) -> None:
        super().__init__(f"{issue.value}: {details}")
        self.issue = issue
        self.details = details

    def render(self) -> str:
        headline = (
            "Cannot access Docker daemon socket: permission denied."
            if self.issue is DockerAccessIssue.PERMISSION_DENIED
            else "Cannot connect to Docker daemon."
        )
        return "\n".join(
            [
                headline,
                "Hint: ensure Docker daemon is running and current user can access "
                "the docker socket.",
                "Hint: if you use rootless Docker, set DOCKER_HOST to your user socket "
                "(for example unix:///run/user/$UID/docker.sock).",
                f"Details: {self.details}",
            ]
        )


class DockerCommandError(DevfleetError):
    tag = ErrorTag.DOCKER_COMMAND

    def __init__(self, exit_code: int, command: str = "docker compose") -> None:
        super().__init__(f"{command} failed with exit code {exit_code}")
        self.exit_code = exit_code
        self.command = command

    def render(self) -> str:
        return "\n".join(
            [
                f"{self.command} failed with exit code {self.exit_code}",
                "Hint: ensure Docker daemon is running and current user can access "
                "/var/run/docker.sock (for example via the docker group).",
                "Hint: if output above contains 'port is already allocated', retry with a "
                "free SSH port, or stop the conflicting project/container.",
            ]
        )


class ProjectFileExistsError(DevfleetError):
    """A generated file already exists and ``force`` was not requested."""

    tag = ErrorTag.FILE_EXISTS

    def __init__(self, path: Path) -> None:
        super().__init__(f"File already exists: {path}")
        self.path = path

    def render(self) -> str:
        return f"File already exists: {self.path} (use --force to overwrite)"


class FileSystemError(DevfleetError):
    tag = ErrorTag.FILE_SYSTEM

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message

    def render(self) -> str:
        return f"File system error at {self.path}: {self.message}"


class ConfigNotFoundError(DevfleetError):
    tag = ErrorTag.CONFIG_NOT_FOUND

    def __init__(self, path: Path) -> None:
        super().__init__(f"docker-git.json not found: {path}")
        self.path = path

    def render(self) -> str:
        return f"docker-git.json not found: {self.path} (run docker-git create in that directory)"


class ConfigDecodeError(DevfleetError):
    tag = ErrorTag.CONFIG_DECODE

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"Invalid docker-git.json at {path}: {message}")
        self.path = path
        self.message = message

    def render(self) -> str:
        return f"Invalid docker-git.json at {self.path}: {self.message}"


def render_error(error: BaseException) -> str:
    """Render a failure into one deterministic, user-facing message."""
    if isinstance(error, DevfleetError):
        return error.render()
    return str(error) or error.__class__.__name__
