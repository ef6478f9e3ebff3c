"""Service entrypoint for host language servers.

Responsibilities (and nothing more):
- Configure structlog
- Own the shared httpx client for the cache's lifetime (open_cache)
- Wire the schema cache, definition index and invalidation into one facade
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from gqlcache import dependencies, documents
from gqlcache.config import Settings
from gqlcache.definition_index import DefinitionIndex
from gqlcache.endpoint import EndpointLoader, build_http_client
from gqlcache.invalidation import EvictionTarget, plan_evictions
from gqlcache.models.watch import SubscriptionEvent
from gqlcache.project_config import GraphQLConfig
from gqlcache.schema_cache import ProjectSchemaCache

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Mapping

    from graphql import DocumentNode, GraphQLSchema

    from gqlcache.models.cache import FragmentDefinitionRecord, ObjectTypeDefinitionRecord
    from gqlcache.models.project import ProjectConfig
    from gqlcache.protocols import DocumentExtractor, EndpointLoaderProtocol, ProjectConfigProvider

    SubscriptionHandler = Callable[[SubscriptionEvent | Mapping[str, Any]], set[EvictionTarget]]

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout carries the host's language-server stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class GraphQLCache:
    """Schema and definition caches for every project of one GraphQL config."""

    def __init__(
        self,
        config_dir: Path | str,
        config: ProjectConfigProvider,
        *,
        endpoint_loader: EndpointLoaderProtocol,
        settings: Settings | None = None,
        extractor: DocumentExtractor = documents.extract_tagged_templates,
    ) -> None:
        self.config_dir = Path(config_dir)
        self.config = config
        self.settings = settings or Settings()
        self.schemas = ProjectSchemaCache(config, endpoint_loader)
        self.definitions = DefinitionIndex(self.settings.index, extractor)

    def get_project_config(self, project_name: str) -> ProjectConfig:
        return self.config.resolve_project_config(project_name)

    # -- schema ---------------------------------------------------------

    async def get_schema(self, project_name: str) -> GraphQLSchema | None:
        return await self.schemas.get_schema(project_name)

    # -- definitions ----------------------------------------------------

    async def get_fragment_definitions(
        self, project: ProjectConfig
    ) -> dict[str, FragmentDefinitionRecord]:
        return await self.definitions.get_fragment_definitions(project)

    async def get_object_type_definitions(
        self, project: ProjectConfig
    ) -> dict[str, ObjectTypeDefinitionRecord]:
        return await self.definitions.get_object_type_definitions(project)

    # -- dependencies ---------------------------------------------------

    get_fragment_dependencies_for_ast = staticmethod(
        dependencies.get_fragment_dependencies_for_ast
    )
    get_object_type_dependencies_for_ast = staticmethod(
        dependencies.get_object_type_dependencies_for_ast
    )

    async def get_fragment_dependencies(
        self, query: str, project: ProjectConfig
    ) -> list[FragmentDefinitionRecord]:
        """Fragments ``query`` depends on, resolved against the project's index."""
        fragments = await self.get_fragment_definitions(project)
        return dependencies.get_fragment_dependencies(query, fragments)

    async def get_object_type_dependencies(
        self, query: str, project: ProjectConfig
    ) -> list[ObjectTypeDefinitionRecord]:
        """Named types ``query`` depends on, resolved against the project's index."""
        object_types = await self.get_object_type_definitions(project)
        return dependencies.get_object_type_dependencies(query, object_types)

    async def get_dependencies_for_ast(
        self, document: DocumentNode, project: ProjectConfig
    ) -> tuple[list[FragmentDefinitionRecord], list[ObjectTypeDefinitionRecord]]:
        definitions = await self.definitions.get_definitions(project)
        return (
            dependencies.get_fragment_dependencies_for_ast(document, definitions.fragments),
            dependencies.get_object_type_dependencies_for_ast(document, definitions.object_types),
        )

    # -- invalidation ---------------------------------------------------

    def handle_watchman_subscribe_event(
        self, root_path: Path | str, project: ProjectConfig
    ) -> SubscriptionHandler:
        """Build the callback a watchman subscription invokes with each change batch.

        The callback evicts synchronously, in the order batches arrive, and
        returns the caches it evicted. It never rebuilds.
        """
        root = Path(root_path)

        def handler(event: SubscriptionEvent | Mapping[str, Any]) -> set[EvictionTarget]:
            if not isinstance(event, SubscriptionEvent):
                event = SubscriptionEvent.model_validate(event)
            entry = self.schemas.peek(project.name)
            indexed = self.definitions.peek(project.name)
            targets = plan_evictions(
                event,
                root,
                project,
                schema_source_paths=entry.source_paths if entry is not None else frozenset(),
                definition_paths=indexed.file_paths if indexed is not None else frozenset(),
            )
            if EvictionTarget.SCHEMA in targets:
                self.schemas.invalidate(project.name)
            if EvictionTarget.DEFINITIONS in targets:
                self.definitions.invalidate(project.name)
            if targets:
                log.debug(
                    "file_change_evicted",
                    project=project.name,
                    targets=sorted(targets),
                    files=len(event.files),
                )
            return targets

        return handler

    def invalidate(self, project_name: str) -> None:
        self.schemas.invalidate(project_name)
        self.definitions.invalidate(project_name)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def open_cache(
    root: Path | str,
    settings: Settings | None = None,
) -> AsyncGenerator[GraphQLCache, None]:
    """Create a GraphQLCache for the .graphqlrc in ``root`` and close its HTTP client on exit."""
    settings = settings or Settings()
    setup_logging(settings)

    config = GraphQLConfig.from_root(root)
    http_client = build_http_client(settings.endpoint)
    log.info("graphql_cache_starting", root=str(root), config=str(config.path))
    try:
        yield GraphQLCache(
            root,
            config,
            endpoint_loader=EndpointLoader(http_client),
            settings=settings,
        )
    finally:
        await http_client.aclose()
        log.info("graphql_cache_stopped", root=str(root))
