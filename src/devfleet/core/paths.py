"""Path resolution relative to the projects root."""

from __future__ import annotations

import os
from pathlib import Path

from devfleet.models.project import TemplateConfig

PROJECTS_ROOT_ALIAS = ".docker-git"


def _normalize_relative(value: str) -> str:
    normalized = value.replace("\\", "/").strip()
    return normalized[2:] if normalized.startswith("./") else normalized


def resolve_root_path(projects_root: Path, target: str | Path, base_dir: Path | None = None) -> Path:
    """Map ``target`` onto an absolute path.

    Absolute paths pass through. ``.docker-git`` and ``.docker-git/...`` refer
    to the projects root. Other relative paths are resolved from ``base_dir``,
    which defaults to the projects root.
    """
    raw = str(target)
    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return candidate

    normalized = _normalize_relative(raw)
    if normalized == PROJECTS_ROOT_ALIAS:
        return projects_root
    prefix = f"{PROJECTS_ROOT_ALIAS}/"
    if normalized.startswith(prefix):
        return projects_root / normalized[len(prefix) :]
    return (base_dir if base_dir is not None else projects_root) / normalized


def relative_posix(from_dir: Path, target: Path) -> str:
    """Portable relative path embedded in generated compose files."""
    text = Path(os.path.relpath(target, from_dir)).as_posix()
    return text if text.startswith(".") else f"./{text}"


def localize_host_paths(template: TemplateConfig, out_dir: Path, projects_root: Path) -> TemplateConfig:
    """Rewrite host-side paths so they are relative to the project directory."""
    authorized_keys = resolve_root_path(projects_root, template.authorized_keys_path)
    env_global = resolve_root_path(projects_root, template.env_global_path)
    env_project = template.env_project_path
    if Path(env_project).is_absolute():
        env_project = relative_posix(out_dir, Path(env_project))
    return template.model_copy(
        update={
            "authorized_keys_path": relative_posix(out_dir, authorized_keys),
            "env_global_path": relative_posix(out_dir, env_global),
            "env_project_path": env_project.replace("\\", "/"),
        }
    )


def is_within_projects_root(path: Path, projects_root: Path) -> bool:
    """True only for paths strictly below the root; the root itself is excluded."""
    resolved = path.resolve()
    root = projects_root.resolve()
    return resolved != root and resolved.is_relative_to(root)
