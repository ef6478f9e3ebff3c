"""Document store: glob expansion, file reads and parsing.

``read_text`` runs in a worker thread. ``expand_globs`` and ``schema_files``
are synchronous; async callers run them through ``asyncio.to_thread`` so a
slow filesystem never stalls other in-flight lookups on the event loop.
Nothing here caches; callers own that.
"""

from __future__ import annotations

import asyncio
import fnmatch
import glob
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from graphql import (
    EnumTypeDefinitionNode,
    GraphQLError,
    InputObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    ObjectTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    UnionTypeDefinitionNode,
    parse,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from graphql import DocumentNode

    from gqlcache.protocols import DocumentExtractor

log = structlog.get_logger()

SCHEMA_FILE_SUFFIXES = (".graphql", ".graphqls", ".gql")

# Top-level definitions that other definitions can reference by name
NAMED_TYPE_DEFINITION_NODES = (
    ObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    InputObjectTypeDefinitionNode,
    EnumTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    UnionTypeDefinitionNode,
)

# graphql`...`, gql`...`, graphql.experimental`...`
_TAGGED_TEMPLATE_RE = re.compile(r"\b(?:graphql|gql)(?:\.experimental)?\s*`([^`]*)`")
_INTERPOLATION_RE = re.compile(r"\$\{[^}]*\}")


@dataclass(frozen=True)
class LoadedDocument:
    """A file that was read and parsed. One file may yield several documents."""

    file_path: str
    content: str
    document: DocumentNode


def expand_globs(
    patterns: Iterable[str],
    root: Path,
    excludes: Iterable[str] = (),
) -> list[Path]:
    """Expand glob patterns against ``root`` into existing files.

    Order follows the pattern list, sorted within each pattern; a file matched
    by several patterns is kept at its first position. Patterns that match
    nothing (or point at missing directories) contribute nothing.
    """
    exclude_patterns = list(excludes)
    seen: set[Path] = set()
    paths: list[Path] = []

    for pattern in patterns:
        if Path(pattern).is_absolute():
            matches = [Path(m) for m in glob.glob(pattern, recursive=True)]
        else:
            matches = [root / m for m in glob.glob(pattern, root_dir=root, recursive=True)]

        for path in sorted(matches):
            if not path.is_file():
                continue
            resolved = path.resolve()
            if resolved in seen or _is_excluded(resolved, root, exclude_patterns):
                continue
            seen.add(resolved)
            paths.append(resolved)

    return paths


def _is_excluded(path: Path, root: Path, patterns: list[str]) -> bool:
    if not patterns:
        return False
    try:
        relative = path.relative_to(root.resolve()).as_posix()
    except ValueError:
        relative = path.as_posix()
    return any(fnmatch.fnmatch(relative, pattern) for pattern in patterns)


def schema_files(schema_path: Path) -> list[Path]:
    """Files making up a schema: the file itself, or every SDL file under a directory."""
    if schema_path.is_dir():
        return sorted(
            p.resolve()
            for p in schema_path.rglob("*")
            if p.is_file() and p.suffix in SCHEMA_FILE_SUFFIXES
        )
    if schema_path.is_file():
        return [schema_path.resolve()]
    # Anything else is treated as a glob
    return expand_globs([str(schema_path)], schema_path.parent)


async def read_text(path: Path) -> str:
    return await asyncio.to_thread(path.read_text, encoding="utf-8")


def extract_tagged_templates(text: str) -> list[str]:
    """Return the bodies of graphql/gql tagged template literals in JS/TS source.

    ``${...}`` interpolations are blanked out; they usually splice in fragment
    documents that are indexed from their own files.
    """
    return [
        _INTERPOLATION_RE.sub(" ", match.group(1))
        for match in _TAGGED_TEMPLATE_RE.finditer(text)
    ]


def parse_file_content(
    path: Path,
    content: str,
    *,
    extractor: DocumentExtractor = extract_tagged_templates,
    embedded_extensions: Sequence[str] = (),
) -> list[tuple[str, DocumentNode]]:
    """Parse a file's text, going through ``extractor`` for host-language files.

    Returns (source, document) pairs; for plain GraphQL files the source is the
    whole file. Raises GraphQLError if any of the file's documents fails to parse.
    """
    if path.suffix in embedded_extensions:
        sources = [s for s in extractor(content) if s.strip()]
    else:
        sources = [content]
    return [(source, parse(source)) for source in sources]


async def load_documents(
    paths: Sequence[Path],
    *,
    extractor: DocumentExtractor = extract_tagged_templates,
    embedded_extensions: Sequence[str] = (),
) -> list[LoadedDocument]:
    """Read and parse ``paths`` concurrently, in order.

    Unreadable or unparsable files are logged and skipped; they never abort
    loading of the remaining files.
    """
    contents = await asyncio.gather(
        *(read_text(path) for path in paths),
        return_exceptions=True,
    )

    loaded: list[LoadedDocument] = []
    for path, content in zip(paths, contents, strict=True):
        if isinstance(content, BaseException):
            if not isinstance(content, OSError | UnicodeDecodeError):
                raise content
            log.warning("document_read_failed", path=str(path), error=str(content))
            continue
        try:
            documents = parse_file_content(
                path,
                content,
                extractor=extractor,
                embedded_extensions=embedded_extensions,
            )
        except GraphQLError as exc:
            log.warning("document_parse_failed", path=str(path), error=exc.message)
            continue
        loaded.extend(LoadedDocument(str(path), source, doc) for source, doc in documents)

    return loaded
