"""Transitive fragment and named-type dependency resolution.

Pure functions over a parsed document and a name → record index; no caching,
no I/O. One breadth-first traversal serves both variants, parameterized by a
ReferenceStrategy that says which names a node refers to and which names a
document defines for itself.

The walk keeps an explicit queue and a visited map keyed by name, so
self-referential and mutually recursive definitions terminate and each record
is emitted once, in first-discovery order.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from graphql import FragmentDefinitionNode, GraphQLError, Visitor, parse, visit

from gqlcache.documents import NAMED_TYPE_DEFINITION_NODES

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from graphql import DocumentNode, FragmentSpreadNode, NamedTypeNode, Node

    from gqlcache.models.cache import (
        DefinitionRecord,
        FragmentDefinitionRecord,
        ObjectTypeDefinitionRecord,
    )

R = TypeVar("R", bound="DefinitionRecord")


class _FragmentSpreadCollector(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.names: list[str] = []

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: object) -> None:
        self.names.append(node.name.value)


class _NamedTypeCollector(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.names: list[str] = []

    def enter_named_type(self, node: NamedTypeNode, *_args: object) -> None:
        self.names.append(node.name.value)


def fragment_spread_names(node: Node) -> list[str]:
    """Names of every ``...Spread`` under ``node``, in document order."""
    collector = _FragmentSpreadCollector()
    visit(node, collector)
    return collector.names


def named_type_names(node: Node) -> list[str]:
    """Names of every type reference (field, argument, variable, union member...) under ``node``."""
    collector = _NamedTypeCollector()
    visit(node, collector)
    return collector.names


def local_fragment_names(document: DocumentNode) -> set[str]:
    return {
        definition.name.value
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }


def local_type_names(document: DocumentNode) -> set[str]:
    return {
        definition.name.value
        for definition in document.definitions
        if isinstance(definition, NAMED_TYPE_DEFINITION_NODES)
    }


@dataclass(frozen=True)
class ReferenceStrategy:
    references: Callable[[Node], list[str]]
    local_names: Callable[[DocumentNode], set[str]]


FRAGMENT_SPREADS = ReferenceStrategy(
    references=fragment_spread_names,
    local_names=local_fragment_names,
)
NAMED_TYPES = ReferenceStrategy(
    references=named_type_names,
    local_names=local_type_names,
)


def resolve_dependencies(
    document: DocumentNode,
    index: Mapping[str, R],
    strategy: ReferenceStrategy,
) -> list[R]:
    """Return the records reachable from ``document``'s references, deduplicated.

    Names the document defines itself are never dependencies. Names missing
    from ``index`` (built-in scalars, not-yet-indexed files) are skipped.
    """
    local = strategy.local_names(document)
    emitted: dict[str, R] = {}
    queue = deque(strategy.references(document))

    while queue:
        name = queue.popleft()
        if name in emitted or name in local:
            continue
        record = index.get(name)
        if record is None:
            continue
        emitted[name] = record
        queue.extend(strategy.references(record.definition))

    return list(emitted.values())


def get_fragment_dependencies_for_ast(
    document: DocumentNode,
    fragment_definitions: Mapping[str, FragmentDefinitionRecord],
) -> list[FragmentDefinitionRecord]:
    return resolve_dependencies(document, fragment_definitions, FRAGMENT_SPREADS)


def get_object_type_dependencies_for_ast(
    document: DocumentNode,
    object_type_definitions: Mapping[str, ObjectTypeDefinitionRecord],
) -> list[ObjectTypeDefinitionRecord]:
    return resolve_dependencies(document, object_type_definitions, NAMED_TYPES)


def _parse_or_none(text: str) -> DocumentNode | None:
    try:
        return parse(text)
    except GraphQLError:
        return None


def get_fragment_dependencies(
    query: str,
    fragment_definitions: Mapping[str, FragmentDefinitionRecord] | None,
) -> list[FragmentDefinitionRecord]:
    """Parse ``query`` and resolve its fragments. Unparsable text has no dependencies."""
    if not fragment_definitions:
        return []
    document = _parse_or_none(query)
    if document is None:
        return []
    return get_fragment_dependencies_for_ast(document, fragment_definitions)


def get_object_type_dependencies(
    query: str,
    object_type_definitions: Mapping[str, ObjectTypeDefinitionRecord] | None,
) -> list[ObjectTypeDefinitionRecord]:
    """Parse ``query`` and resolve its named types. Unparsable text has no dependencies."""
    if not object_type_definitions:
        return []
    document = _parse_or_none(query)
    if document is None:
        return []
    return get_object_type_dependencies_for_ast(document, object_type_definitions)
