from __future__ import annotations

from gqlcache.models.cache import (
    CachedSchemaEntry,
    DefinitionRecord,
    FragmentDefinitionRecord,
    ObjectTypeDefinitionRecord,
    ProjectDefinitions,
    SchemaSource,
)
from gqlcache.models.project import EndpointConfig, ProjectConfig, ProjectExtensions
from gqlcache.models.watch import FileChange, SubscriptionEvent

__all__ = [
    # project
    "EndpointConfig",
    "ProjectConfig",
    "ProjectExtensions",
    # cache
    "SchemaSource",
    "CachedSchemaEntry",
    "DefinitionRecord",
    "FragmentDefinitionRecord",
    "ObjectTypeDefinitionRecord",
    "ProjectDefinitions",
    # watch
    "FileChange",
    "SubscriptionEvent",
]
