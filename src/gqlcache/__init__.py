"""gqlcache: schema and fragment dependency cache for GraphQL language servers."""

from __future__ import annotations

import importlib.metadata
import warnings

FALLBACK_VERSION = "0.0.0+unknown"


def _resolve_version(distribution: str = "gqlcache") -> str:
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        # Running from a source tree without installed metadata
        warnings.warn(
            f"Package metadata for {distribution!r} not found; using {FALLBACK_VERSION!r}.",
            RuntimeWarning,
            stacklevel=2,
        )
        return FALLBACK_VERSION


__version__ = _resolve_version()

from gqlcache.errors import SchemaCacheError  # noqa: E402
from gqlcache.service import GraphQLCache, open_cache  # noqa: E402

__all__ = ["GraphQLCache", "SchemaCacheError", "__version__", "open_cache"]
