"""Read and write docker-git.json."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from devfleet.core.errors import ConfigDecodeError, ConfigNotFoundError, FileSystemError
from devfleet.models.project import CONFIG_FILE_NAME, ProjectConfig


def config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_FILE_NAME


def _describe_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def decode_project_config(path: Path, raw: str) -> ProjectConfig:
    try:
        return ProjectConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigDecodeError(path, _describe_validation_error(exc)) from exc


def read_project_config(project_dir: Path) -> ProjectConfig:
    path = config_path(project_dir)
    if not path.is_file():
        raise ConfigNotFoundError(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc
    return decode_project_config(path, raw)


def write_project_config(project_dir: Path, config: ProjectConfig) -> Path:
    path = config_path(project_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(config.to_json(), encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc
    return path
