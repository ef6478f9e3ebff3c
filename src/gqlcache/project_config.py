"""Project configuration loading from .graphqlrc files.

A config file either describes a single project at the top level, or holds a
``projects`` mapping whose entries inherit any top-level keys they don't set:

    schemaPath: schema.graphql        # shared default
    projects:
      app:
        includes: ["src/**/*.graphql"]
      admin:
        schemaPath: admin/schema.graphql

The file is re-read when its mtime changes, so resolving a project on every
schema cache miss picks up edits without an explicit reload.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from gqlcache.errors import ConfigError, ErrorCode
from gqlcache.models.project import ProjectConfig

log = structlog.get_logger()

CONFIG_FILE_NAMES = (".graphqlrc.yml", ".graphqlrc.yaml", ".graphqlrc", ".graphqlrc.json")
DEFAULT_PROJECT_NAME = "default"


def find_config_file(root: Path) -> Path | None:
    """Return the first .graphqlrc variant present in ``root``, or None."""
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def parse_projects(raw: Any, config_dir: Path) -> dict[str, ProjectConfig]:
    """Build ProjectConfig models from a decoded config document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(
            code=ErrorCode.INVALID_CONFIG,
            message="GraphQL config must be a mapping at the top level.",
            suggestion="Check the .graphqlrc file for stray list or scalar syntax.",
        )

    defaults = {key: value for key, value in raw.items() if key != "projects"}
    raw_projects = raw.get("projects")
    if not raw_projects:
        raw_projects = {DEFAULT_PROJECT_NAME: {}}

    projects: dict[str, ProjectConfig] = {}
    for name, body in raw_projects.items():
        merged = {**defaults, **(body or {})}
        try:
            projects[name] = ProjectConfig(name=name, config_dir=config_dir, **merged)
        except (ValidationError, TypeError) as exc:
            raise ConfigError(
                code=ErrorCode.INVALID_CONFIG,
                message=f"Invalid configuration for project '{name}': {exc}",
                suggestion="Check schemaPath, includes and extensions for that project.",
            ) from exc
    return projects


class GraphQLConfig:
    """File-backed ProjectConfigProvider."""

    def __init__(self, config_path: Path) -> None:
        self._path = config_path
        self._mtime_ns: int | None = None
        self._projects: dict[str, ProjectConfig] = {}
        self._load_if_changed()

    @classmethod
    def from_root(cls, root: Path | str) -> GraphQLConfig:
        root = Path(root)
        path = find_config_file(root)
        if path is None:
            raise ConfigError(
                code=ErrorCode.INVALID_CONFIG,
                message=f"No GraphQL config file found in {root}",
                suggestion=f"Create one of: {', '.join(CONFIG_FILE_NAMES)}",
            )
        return cls(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def project_names(self) -> list[str]:
        self._load_if_changed()
        return list(self._projects)

    def resolve_project_config(self, project_name: str) -> ProjectConfig:
        self._load_if_changed()
        project = self._projects.get(project_name)
        if project is None:
            raise ConfigError(
                code=ErrorCode.PROJECT_NOT_FOUND,
                message=f"Project '{project_name}' is not defined in {self._path}",
                suggestion=f"Known projects: {', '.join(self._projects) or '(none)'}",
            )
        return project

    # Matches graphql-config's accessor name so hosts ported from it read naturally
    get_project_config = resolve_project_config

    def _load_if_changed(self) -> None:
        try:
            mtime_ns = self._path.stat().st_mtime_ns
        except OSError as exc:
            raise ConfigError(
                code=ErrorCode.INVALID_CONFIG,
                message=f"Cannot stat GraphQL config {self._path}: {exc}",
                suggestion="The config file may have been moved or deleted.",
            ) from exc
        if mtime_ns == self._mtime_ns:
            return

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(
                code=ErrorCode.INVALID_CONFIG,
                message=f"Cannot read GraphQL config {self._path}: {exc}",
                suggestion="Fix the YAML/JSON syntax of the config file.",
            ) from exc

        self._projects = parse_projects(raw, self._path.parent)
        self._mtime_ns = mtime_ns
        log.info("project_config_loaded", path=str(self._path), projects=list(self._projects))
