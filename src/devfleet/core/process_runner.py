"""Async subprocess execution for docker, docker compose and git."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from devfleet.logger import logger

MISSING_EXECUTABLE_EXIT_CODE = 127


@dataclass(slots=True)
class CommandResult:
    """Exit status and captured output of one command."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class DaemonContext:
    """Docker daemon connection settings shared by every spawned command.

    The ``DOCKER_HOST`` override is write-once: after a fallback socket has
    been proven reachable it stays in force for the life of the context.
    """

    def __init__(self, docker_host: str | None = None) -> None:
        self._docker_host = docker_host

    @property
    def docker_host(self) -> str | None:
        return self._docker_host

    def set_docker_host(self, docker_host: str) -> None:
        if self._docker_host is not None:
            if self._docker_host != docker_host:
                logger.warning(
                    "DOCKER_HOST override already set; keeping it",
                    current=self._docker_host,
                    ignored=docker_host,
                )
            return
        self._docker_host = docker_host
        logger.info("Using fallback Docker socket", docker_host=docker_host)

    def apply(self, environ: Mapping[str, str]) -> dict[str, str]:
        merged = dict(environ)
        if self._docker_host is not None:
            merged["DOCKER_HOST"] = self._docker_host
        return merged


_DEFAULT_CONTEXT = DaemonContext()


def default_daemon_context() -> DaemonContext:
    return _DEFAULT_CONTEXT


class ProcessRunner:
    """Run external commands without blocking the event loop."""

    def __init__(self, context: DaemonContext | None = None) -> None:
        self._context = context if context is not None else default_daemon_context()

    @property
    def context(self) -> DaemonContext:
        return self._context

    def build_env(self, env: Mapping[str, str] | None = None) -> dict[str, str]:
        merged = self._context.apply(os.environ)
        if env:
            merged.update(env)
        return merged

    async def run(
        self,
        cwd: Path,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(cwd),
                env=self.build_env(env),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            return CommandResult(
                exit_code=MISSING_EXECUTABLE_EXIT_CODE,
                stdout="",
                stderr=f"{command}: {exc.strerror or 'not found'}",
            )
        stdout, stderr = await process.communicate()
        return CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def stream(
        self,
        cwd: Path,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> int:
        """Run a long-lived command with output inherited from this process."""
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(cwd),
                env=self.build_env(env),
            )
        except FileNotFoundError:
            return MISSING_EXECUTABLE_EXIT_CODE
        returncode = await process.wait()
        return returncode
