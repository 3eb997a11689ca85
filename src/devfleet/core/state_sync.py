"""Best-effort commit and push of the projects root after lifecycle changes."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from devfleet.core.process_runner import CommandResult, ProcessRunner
from devfleet.logger import logger

GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class StateSync(Protocol):
    async def auto_sync(self, message: str) -> None: ...


class NullStateSync:
    """State sync that does nothing."""

    async def auto_sync(self, message: str) -> None:
        return None


class StateSyncError(RuntimeError):
    """A git step of the state sync failed."""


class GitStateSync:
    """Commit all changes under the projects root and push them to ``origin``."""

    def __init__(self, projects_root: Path, runner: ProcessRunner) -> None:
        self._projects_root = projects_root
        self._runner = runner

    async def auto_sync(self, message: str) -> None:
        if not self._projects_root.is_dir():
            return
        try:
            await self._sync(message)
        except StateSyncError as exc:
            logger.warning("State auto-sync failed", err=str(exc))

    async def _sync(self, message: str) -> None:
        inside = await self._git("rev-parse", "--is-inside-work-tree")
        if not inside.ok or inside.stdout.strip() != "true":
            return

        await self._checked("add", "-A")
        staged = await self._git("diff", "--cached", "--quiet")
        if not staged.ok:
            await self._checked("commit", "-m", message)

        origin = await self._git("remote", "get-url", "origin")
        if not origin.ok or not origin.stdout.strip():
            logger.debug("State repository has no origin; skipping push")
            return
        await self._checked("push", "origin", "HEAD")

    async def _git(self, *args: str) -> CommandResult:
        return await self._runner.run(self._projects_root, "git", list(args), env=GIT_ENV)

    async def _checked(self, *args: str) -> CommandResult:
        result = await self._git(*args)
        if not result.ok:
            msg = f"git {args[0]} failed with exit code {result.exit_code}"
            raise StateSyncError(msg)
        return result
