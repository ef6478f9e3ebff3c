"""Protocol interfaces for the collaborators the cache consumes.

The cache references these protocols, not the concrete implementations. This
allows:
- Host language servers to plug in their own config loader or extractor
- Tests to use lightweight in-memory implementations
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gqlcache.models.project import EndpointConfig, ProjectConfig


class ProjectConfigProvider(Protocol):
    """Resolves a project name to its configuration. Called on every cache miss."""

    def resolve_project_config(self, project_name: str) -> ProjectConfig: ...


class EndpointLoaderProtocol(Protocol):
    """Fetches an introspection result from a remote endpoint."""

    async def load(self, endpoint: EndpointConfig) -> dict[str, Any]: ...


class DocumentExtractor(Protocol):
    """Pulls embedded GraphQL document strings out of host-language source text."""

    def __call__(self, text: str) -> Sequence[str]: ...
