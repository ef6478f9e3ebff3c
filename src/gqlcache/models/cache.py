from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graphql import DefinitionNode, GraphQLSchema


class SchemaSource(StrEnum):
    DISK = "disk"
    ENDPOINT = "endpoint"


@dataclass(frozen=True)
class CachedSchemaEntry:
    """A successfully built schema for one project."""

    project_name: str
    schema: GraphQLSchema
    source: SchemaSource
    # Absolute paths of every file read to build the schema
    source_paths: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DefinitionRecord:
    """A named top-level definition and the file it came from."""

    name: str
    file_path: str
    content: str  # Text of the document the definition was parsed from
    definition: DefinitionNode


class FragmentDefinitionRecord(DefinitionRecord):
    """A `fragment X on Y { ... }` definition."""


class ObjectTypeDefinitionRecord(DefinitionRecord):
    """An object/interface/input/enum/scalar/union type definition."""


@dataclass
class ProjectDefinitions:
    """Both indexes for one project, produced by a single scan of its includes."""

    fragments: dict[str, FragmentDefinitionRecord] = field(default_factory=dict)
    object_types: dict[str, ObjectTypeDefinitionRecord] = field(default_factory=dict)
    # Files that were read during the scan, parsed or not
    file_paths: frozenset[str] = frozenset()
