from __future__ import annotations

from pathlib import Path

from devfleet.core.paths import (
    is_within_projects_root,
    localize_host_paths,
    relative_posix,
    resolve_root_path,
)
from tests.support.projects import make_template


def test_resolve_root_path_maps_alias(tmp_path: Path) -> None:
    assert resolve_root_path(tmp_path, ".docker-git") == tmp_path
    assert resolve_root_path(tmp_path, "./.docker-git/org/repo") == tmp_path / "org" / "repo"


def test_resolve_root_path_relative_and_absolute(tmp_path: Path) -> None:
    other = tmp_path / "elsewhere"

    assert resolve_root_path(tmp_path, "org/repo") == tmp_path / "org" / "repo"
    assert resolve_root_path(tmp_path, "repo", base_dir=other) == other / "repo"
    assert resolve_root_path(tmp_path, other) == other


def test_relative_posix_prefixes_dot(tmp_path: Path) -> None:
    assert relative_posix(tmp_path, tmp_path / "a" / "b") == "./a/b"
    assert relative_posix(tmp_path / "x" / "y", tmp_path / "keys") == "../../keys"


def test_localize_host_paths(tmp_path: Path) -> None:
    out_dir = tmp_path / "org" / "repo"

    localized = localize_host_paths(make_template(), out_dir, tmp_path)

    assert localized.authorized_keys_path == "../../authorized_keys"
    assert localized.env_global_path == "../../.orch/env/global.env"
    assert localized.env_project_path == "./.orch/env/project.env"


def test_is_within_projects_root(tmp_path: Path) -> None:
    assert is_within_projects_root(tmp_path / "org" / "repo", tmp_path)
    assert not is_within_projects_root(tmp_path, tmp_path)
    assert not is_within_projects_root(tmp_path.parent, tmp_path)
    assert not is_within_projects_root(tmp_path / ".." / "sibling", tmp_path)
