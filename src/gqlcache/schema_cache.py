"""Per-project schema cache.

Decides, per project, whether the schema comes from the introspection
endpoint or from disk, and memoizes the result as one CachedSchemaEntry per
project name. Failed builds and "no schema" outcomes are never stored, so a
later config fix is picked up without manual invalidation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from gqlcache.endpoint import schema_from_introspection
from gqlcache.errors import ConfigError, EndpointError, ErrorCode
from gqlcache.memo import KeyedMemo
from gqlcache.models.cache import CachedSchemaEntry, SchemaSource
from gqlcache.schema_builder import build_schema, load_directive_extensions, merge_directives

if TYPE_CHECKING:
    from pathlib import Path

    from graphql import GraphQLSchema

    from gqlcache.models.project import EndpointConfig, ProjectConfig
    from gqlcache.protocols import EndpointLoaderProtocol, ProjectConfigProvider

log = structlog.get_logger()


@dataclass(frozen=True)
class _SchemaSources:
    endpoint: EndpointConfig | None
    schema_path: Path | None


def _schema_sources(project: ProjectConfig) -> _SchemaSources:
    endpoint = project.endpoint
    schema_path = project.resolve(project.schema_path) if project.schema_path else None
    if endpoint is None and schema_path is None:
        raise ConfigError(
            code=ErrorCode.NO_SCHEMA_SOURCE,
            message=f"Project '{project.name}' has neither a schemaPath nor an endpoint.",
            suggestion="Add schemaPath or extensions.endpoints to the project config.",
            recoverable=True,
        )
    return _SchemaSources(endpoint=endpoint, schema_path=schema_path)


class ProjectSchemaCache:
    """In-memory schema cache keyed by project name."""

    def __init__(
        self,
        config_provider: ProjectConfigProvider,
        endpoint_loader: EndpointLoaderProtocol,
    ) -> None:
        self._config_provider = config_provider
        self._endpoint_loader = endpoint_loader
        self._memo: KeyedMemo[CachedSchemaEntry] = KeyedMemo("schema")

    async def get_schema(self, project_name: str) -> GraphQLSchema | None:
        """Return the project's schema, building it on a miss.

        Returns None when the project is unknown, has no schema source, or its
        only source (an endpoint) failed. BuildError propagates.
        """
        entry = await self.get_entry(project_name)
        return entry.schema if entry is not None else None

    async def get_entry(self, project_name: str) -> CachedSchemaEntry | None:
        return await self._memo.get(project_name, lambda: self._build(project_name))

    def peek(self, project_name: str) -> CachedSchemaEntry | None:
        """Return the live entry without building."""
        return self._memo.peek(project_name)

    def invalidate(self, project_name: str) -> bool:
        """Evict the project's entry. Never rebuilds; the next get_schema does."""
        return self._memo.invalidate(project_name)

    def clear(self) -> None:
        self._memo.clear()

    def size_for_testing(self) -> int:
        return len(self._memo)

    async def _build(self, project_name: str) -> CachedSchemaEntry | None:
        try:
            project = self._config_provider.resolve_project_config(project_name)
            sources = _schema_sources(project)
        except ConfigError as exc:
            log.info("schema_unavailable", project=project_name, code=exc.code, reason=exc.message)
            return None

        started = time.monotonic()
        extensions = await load_directive_extensions(project)

        if sources.endpoint is not None:
            try:
                introspection = await self._endpoint_loader.load(sources.endpoint)
                schema = schema_from_introspection(introspection, sources.endpoint.url)
            except EndpointError as exc:
                log.warning(
                    "endpoint_load_failed",
                    project=project_name,
                    url=sources.endpoint.url,
                    code=exc.code,
                    reason=exc.message,
                    fallback="disk" if sources.schema_path is not None else None,
                )
            else:
                entry = CachedSchemaEntry(
                    project_name=project_name,
                    schema=merge_directives(schema, extensions.documents),
                    source=SchemaSource.ENDPOINT,
                    source_paths=extensions.source_paths,
                )
                _log_built(entry, started)
                return entry

        # Only reached without a disk path when the endpoint just failed
        if sources.schema_path is None:
            return None

        built = await build_schema(sources.schema_path, extensions.documents)
        entry = CachedSchemaEntry(
            project_name=project_name,
            schema=built.schema,
            source=SchemaSource.DISK,
            source_paths=built.source_paths | extensions.source_paths,
        )
        _log_built(entry, started)
        return entry


def _log_built(entry: CachedSchemaEntry, started: float) -> None:
    log.info(
        "schema_build_complete",
        project=entry.project_name,
        source=entry.source,
        files=len(entry.source_paths),
        elapsed_ms=round((time.monotonic() - started) * 1000, 1),
    )
