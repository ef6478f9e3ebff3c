"""Translate watchman change batches into cache evictions.

``plan_evictions`` is pure: it only decides which caches a batch touches.
Applying the plan (and owning the subscription) is left to the caller, see
GraphQLCache.handle_watchman_subscribe_event.
"""

from __future__ import annotations

import fnmatch
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gqlcache.models.project import ProjectConfig
    from gqlcache.models.watch import SubscriptionEvent


class EvictionTarget(StrEnum):
    SCHEMA = "schema"
    DEFINITIONS = "definitions"


def _glob_matches(path: str, pattern: str) -> bool:
    if fnmatch.fnmatch(path, pattern):
        return True
    # `a/**/b` should also match `a/b`
    return "**/" in pattern and fnmatch.fnmatch(path, pattern.replace("**/", ""))


def _matches_any(path: Path, project: ProjectConfig, patterns: Iterable[str]) -> bool:
    return any(
        _glob_matches(str(path), str(project.resolve(pattern).resolve()))
        for pattern in patterns
    )


def matches_schema_path(path: Path, project: ProjectConfig) -> bool:
    """True if ``path`` is the schema file, lies under the schema directory, or matches its glob."""
    if not project.schema_path:
        return False
    schema_path = project.resolve(project.schema_path).resolve()
    if path == schema_path or schema_path in path.parents:
        return True
    return _glob_matches(str(path), str(schema_path))


def plan_evictions(
    event: SubscriptionEvent,
    root: Path,
    project: ProjectConfig,
    schema_source_paths: frozenset[str] = frozenset(),
    definition_paths: frozenset[str] = frozenset(),
) -> set[EvictionTarget]:
    """Decide which of the project's caches a change batch invalidates.

    The schema entry is evicted when a changed file is the configured schema
    path (whatever the entry's source, since endpoint schemas still borrow
    directive files from disk), a configured directive file, or any file the
    cached entry recorded as read. The definition index is evicted when a
    changed file matches the project's includes and not its excludes, or was
    one of the files the last scan read (``definition_paths``).
    """
    targets: set[EvictionTarget] = set()
    base = Path(event.root) if event.root else root

    for change in event.files:
        path = (base / change.name).resolve()

        if (
            str(path) in schema_source_paths
            or matches_schema_path(path, project)
            or _matches_any(path, project, project.extensions.directive_paths)
        ):
            targets.add(EvictionTarget.SCHEMA)

        if str(path) in definition_paths or (
            _matches_any(path, project, project.includes)
            and not _matches_any(path, project, project.excludes)
        ):
            targets.add(EvictionTarget.DEFINITIONS)

        if len(targets) == len(EvictionTarget):
            break

    return targets
