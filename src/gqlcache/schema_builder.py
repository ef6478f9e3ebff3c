"""Schema construction from on-disk SDL, plus custom directive extensions.

Pure producers: every function returns a fresh value or raises BuildError.
Caching and fallback decisions belong to schema_cache.py.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from graphql import (
    DirectiveDefinitionNode,
    DocumentNode,
    GraphQLError,
    build_ast_schema,
    concat_ast,
    extend_schema,
    is_specified_directive,
    parse,
    validate_schema,
)

from gqlcache import documents
from gqlcache.errors import BuildError, DirectiveConflictError, ErrorCode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from graphql import GraphQLSchema

    from gqlcache.models.project import ProjectConfig

log = structlog.get_logger()


@dataclass(frozen=True)
class BuiltSchema:
    schema: GraphQLSchema
    source_paths: frozenset[str]


@dataclass(frozen=True)
class DirectiveExtensions:
    documents: list[DocumentNode]
    source_paths: frozenset[str]


async def build_schema(
    schema_path: Path,
    extension_documents: Sequence[DocumentNode] = (),
) -> BuiltSchema:
    """Build a validated schema from a file, directory or glob of SDL files."""
    files = await asyncio.to_thread(documents.schema_files, schema_path)
    if not files:
        raise BuildError(
            code=ErrorCode.SCHEMA_READ_FAILED,
            message=f"No schema files found at {schema_path}",
            suggestion="Check the project's schemaPath; it must name a file, directory or glob.",
        )

    parsed: list[DocumentNode] = []
    for path in files:
        try:
            text = await documents.read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError(
                code=ErrorCode.SCHEMA_READ_FAILED,
                message=f"Cannot read schema file {path}: {exc}",
                suggestion="The file may have been removed while the schema was building.",
                recoverable=True,
            ) from exc
        try:
            parsed.append(parse(text))
        except GraphQLError as exc:
            raise BuildError(
                code=ErrorCode.SCHEMA_PARSE_FAILED,
                message=f"Syntax error in schema file {path}: {exc.message}",
                suggestion="Fix the SDL syntax; the schema is rebuilt on the next save.",
                recoverable=True,
            ) from exc

    schema = build_schema_from_ast(concat_ast(parsed), str(schema_path))
    schema = merge_directives(schema, extension_documents)
    log.debug("schema_built_from_disk", path=str(schema_path), files=len(files))
    return BuiltSchema(schema=schema, source_paths=frozenset(str(p) for p in files))


def build_schema_from_ast(document: DocumentNode, origin: str) -> GraphQLSchema:
    try:
        schema = build_ast_schema(document)
    except (TypeError, GraphQLError) as exc:
        raise BuildError(
            code=ErrorCode.SCHEMA_INVALID,
            message=f"Invalid schema definition in {origin}: {exc}",
            suggestion="Fix the type definitions reported above.",
            recoverable=True,
        ) from exc
    assert_valid(schema, origin)
    return schema


def assert_valid(schema: GraphQLSchema, origin: str) -> None:
    errors = validate_schema(schema)
    if errors:
        raise BuildError(
            code=ErrorCode.SCHEMA_INVALID,
            message=f"Schema from {origin} failed validation: "
            + "; ".join(error.message for error in errors),
            suggestion="Fix the type definitions reported above.",
            recoverable=True,
        )


def merge_directives(
    schema: GraphQLSchema,
    extension_documents: Sequence[DocumentNode],
) -> GraphQLSchema:
    """Add the directive definitions of ``extension_documents`` to ``schema``.

    The merge is additive only: redefining a built-in or an already declared
    directive raises DirectiveConflictError. Non-directive definitions in the
    extension documents are ignored.
    """
    directive_nodes = [
        definition
        for document in extension_documents
        for definition in document.definitions
        if isinstance(definition, DirectiveDefinitionNode)
    ]
    if not directive_nodes:
        return schema

    existing = {directive.name: directive for directive in schema.directives}
    added: set[str] = set()
    for node in directive_nodes:
        name = node.name.value
        if name in existing:
            kind = "built-in" if is_specified_directive(existing[name]) else "schema"
            raise DirectiveConflictError(
                code=ErrorCode.DIRECTIVE_CONFLICT,
                message=f"Custom directive @{name} collides with a {kind} directive.",
                suggestion="Rename the custom directive; existing directives cannot be overridden.",
            )
        if name in added:
            raise DirectiveConflictError(
                code=ErrorCode.DIRECTIVE_CONFLICT,
                message=f"Custom directive @{name} is defined more than once.",
                suggestion="Keep a single definition of each custom directive.",
            )
        added.add(name)

    try:
        extended = extend_schema(schema, DocumentNode(definitions=tuple(directive_nodes)))
    except (TypeError, GraphQLError) as exc:
        raise BuildError(
            code=ErrorCode.SCHEMA_INVALID,
            message=f"Invalid custom directive definition: {exc}",
            suggestion="Check the argument types and locations of the custom directives.",
        ) from exc
    log.debug("schema_directives_merged", directives=sorted(added))
    return extended


async def load_directive_extensions(project: ProjectConfig) -> DirectiveExtensions:
    """Parse a project's inline custom directives and its directive files."""
    parsed: list[DocumentNode] = []

    for sdl in project.extensions.custom_directives:
        try:
            parsed.append(parse(sdl))
        except GraphQLError as exc:
            raise BuildError(
                code=ErrorCode.SCHEMA_PARSE_FAILED,
                message=f"Syntax error in custom directive {sdl!r}: {exc.message}",
                suggestion="Fix the customDirectives entry in the GraphQL config.",
            ) from exc

    files = await asyncio.to_thread(
        documents.expand_globs, project.extensions.directive_paths, project.config_dir
    )
    for path in files:
        try:
            parsed.append(parse(await documents.read_text(path)))
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError(
                code=ErrorCode.SCHEMA_READ_FAILED,
                message=f"Cannot read directive file {path}: {exc}",
                suggestion="The file may have been removed while the schema was building.",
                recoverable=True,
            ) from exc
        except GraphQLError as exc:
            raise BuildError(
                code=ErrorCode.SCHEMA_PARSE_FAILED,
                message=f"Syntax error in directive file {path}: {exc.message}",
                suggestion="Fix the SDL syntax; the schema is rebuilt on the next save.",
                recoverable=True,
            ) from exc

    return DirectiveExtensions(documents=parsed, source_paths=frozenset(str(p) for p in files))
