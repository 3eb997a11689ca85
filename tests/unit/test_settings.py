from __future__ import annotations

from pathlib import Path

import pytest

from devfleet.config import Settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in (
        "DOCKER_GIT_PROJECTS_ROOT",
        "DOCKER_GIT_MAX_PORT_ATTEMPTS",
        "DOCKER_GIT_SHARED_NETWORK_NAME",
        "DOCKER_GIT_STATE_SYNC_ENABLED",
    ):
        monkeypatch.delenv(key, raising=False)

    settings = Settings()

    assert settings.projects_root == tmp_path / ".docker-git"
    assert settings.max_port_attempts == 25
    assert settings.shared_network_name == "docker-git-shared"
    assert settings.state_sync_enabled is True


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCKER_GIT_PROJECTS_ROOT", str(tmp_path / "fleet"))
    monkeypatch.setenv("DOCKER_GIT_MAX_PORT_ATTEMPTS", "0")
    monkeypatch.setenv("DOCKER_GIT_STATE_SYNC_ENABLED", "false")

    settings = Settings()

    assert settings.projects_root == tmp_path / "fleet"
    assert settings.max_port_attempts == 1
    assert settings.state_sync_enabled is False


def test_settings_expand_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = Settings(projects_root="~/projects")

    assert settings.projects_root == tmp_path / "projects"
