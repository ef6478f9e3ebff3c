"""Fragment and named-type definition index.

One scan per project expands its include globs, parses every matched file and
collects both fragment and named-type definitions into flat name → record
maps. The scan is memoized per project name until invalidated.

Two files defining the same name are not reported: the file processed later
(later include pattern, then later path within a pattern) wins.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from graphql import FragmentDefinitionNode

from gqlcache import documents
from gqlcache.memo import KeyedMemo
from gqlcache.models.cache import (
    FragmentDefinitionRecord,
    ObjectTypeDefinitionRecord,
    ProjectDefinitions,
)

if TYPE_CHECKING:
    from gqlcache.config import IndexSettings
    from gqlcache.models.project import ProjectConfig
    from gqlcache.protocols import DocumentExtractor

log = structlog.get_logger()


class DefinitionIndex:
    """Memoized per-project fragment and named-type definitions."""

    def __init__(
        self,
        settings: IndexSettings,
        extractor: DocumentExtractor = documents.extract_tagged_templates,
    ) -> None:
        self._embedded_extensions = tuple(settings.embedded_extensions)
        self._extractor = extractor
        self._memo: KeyedMemo[ProjectDefinitions] = KeyedMemo("definitions")

    async def get_fragment_definitions(
        self, project: ProjectConfig
    ) -> dict[str, FragmentDefinitionRecord]:
        return (await self.get_definitions(project)).fragments

    async def get_object_type_definitions(
        self, project: ProjectConfig
    ) -> dict[str, ObjectTypeDefinitionRecord]:
        return (await self.get_definitions(project)).object_types

    async def get_definitions(self, project: ProjectConfig) -> ProjectDefinitions:
        definitions = await self._memo.get(project.name, lambda: self._scan(project))
        if definitions is None:
            # Unreachable but satisfies the type checker: _scan never returns None
            raise RuntimeError(f"Definition scan for '{project.name}' produced no result")
        return definitions

    def peek(self, project_name: str) -> ProjectDefinitions | None:
        return self._memo.peek(project_name)

    def invalidate(self, project_name: str) -> bool:
        return self._memo.invalidate(project_name)

    def clear(self) -> None:
        self._memo.clear()

    def size_for_testing(self) -> int:
        return len(self._memo)

    async def _scan(self, project: ProjectConfig) -> ProjectDefinitions:
        paths = await asyncio.to_thread(
            documents.expand_globs, project.includes, project.config_dir, project.excludes
        )
        loaded = await documents.load_documents(
            paths,
            extractor=self._extractor,
            embedded_extensions=self._embedded_extensions,
        )

        result = ProjectDefinitions(file_paths=frozenset(str(p) for p in paths))
        for item in loaded:
            for definition in item.document.definitions:
                if isinstance(definition, FragmentDefinitionNode):
                    name = definition.name.value
                    result.fragments[name] = FragmentDefinitionRecord(
                        name=name,
                        file_path=item.file_path,
                        content=item.content,
                        definition=definition,
                    )
                elif isinstance(definition, documents.NAMED_TYPE_DEFINITION_NODES):
                    name = definition.name.value
                    result.object_types[name] = ObjectTypeDefinitionRecord(
                        name=name,
                        file_path=item.file_path,
                        content=item.content,
                        definition=definition,
                    )

        log.info(
            "definition_index_built",
            project=project.name,
            files=len(paths),
            fragments=len(result.fragments),
            object_types=len(result.object_types),
        )
        return result
