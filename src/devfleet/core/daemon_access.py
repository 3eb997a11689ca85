"""Docker daemon reachability check with rootless-socket recovery."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from devfleet.core.docker import DockerCli
from devfleet.core.errors import DockerAccessError, DockerAccessIssue
from devfleet.core.process_runner import CommandResult
from devfleet.logger import logger


def classify_docker_access_issue(text: str) -> DockerAccessIssue:
    if "permission denied" in text.lower():
        return DockerAccessIssue.PERMISSION_DENIED
    return DockerAccessIssue.DAEMON_UNAVAILABLE


def _current_uid(environ: Mapping[str, str]) -> str | None:
    getuid = getattr(os, "getuid", None)
    if getuid is not None:
        return str(getuid())
    uid = environ.get("UID", "").strip()
    return uid or None


def resolve_docker_host_fallback_candidates(
    environ: Mapping[str, str] | None = None,
    uid: str | None = None,
) -> list[str]:
    """Rootless socket URIs worth trying when ``DOCKER_HOST`` is not set."""
    env = os.environ if environ is None else environ
    if env.get("DOCKER_HOST", "").strip():
        return []

    candidates: list[str] = []
    runtime_dir = env.get("XDG_RUNTIME_DIR", "").strip()
    if runtime_dir:
        candidates.append(f"unix://{runtime_dir}/docker.sock")

    resolved_uid = uid if uid is not None else _current_uid(env)
    if resolved_uid:
        candidates.append(f"unix:///run/user/{resolved_uid}/docker.sock")

    return list(dict.fromkeys(candidates))


def _details(result: CommandResult) -> str:
    stderr = result.stderr.strip()
    return stderr or f"docker info failed with exit code {result.exit_code}"


class DaemonAccessGuard:
    """Verify the daemon answers before any mutating docker command runs."""

    def __init__(
        self,
        docker: DockerCli,
        environ: Mapping[str, str] | None = None,
        uid: str | None = None,
    ) -> None:
        self._docker = docker
        self._environ = environ
        self._uid = uid

    async def ensure(self, cwd: Path) -> None:
        result = await self._docker.info(cwd)
        if result.ok:
            return

        details = _details(result)
        issue = classify_docker_access_issue(details)
        if issue is DockerAccessIssue.DAEMON_UNAVAILABLE:
            raise DockerAccessError(issue, details)

        for candidate in resolve_docker_host_fallback_candidates(self._environ, self._uid):
            probe = await self._docker.info(cwd, env={"DOCKER_HOST": candidate})
            if probe.ok:
                self._docker.runner.context.set_docker_host(candidate)
                return
            details = _details(probe)
            issue = classify_docker_access_issue(details)
            logger.debug("Fallback Docker socket rejected", docker_host=candidate, issue=issue.value)

        raise DockerAccessError(issue, details)
