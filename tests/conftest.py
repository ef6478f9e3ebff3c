"""Shared test fixtures for the gqlcache test suite."""

from __future__ import annotations

import asyncio
import glob
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import graphql
import httpx
import pytest

from gqlcache.config import Settings
from gqlcache.endpoint import EndpointLoader
from gqlcache.project_config import GraphQLConfig
from gqlcache.service import GraphQLCache

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SCHEMA_FILE = FIXTURES_DIR / "__schema__" / "StarWarsSchema.graphql"


@pytest.fixture()
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture()
def graphql_config() -> GraphQLConfig:
    """Project config loaded from tests/fixtures/.graphqlrc.yml."""
    return GraphQLConfig.from_root(FIXTURES_DIR)


@pytest.fixture()
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def cache(graphql_config: GraphQLConfig, http_client: httpx.AsyncClient) -> GraphQLCache:
    return GraphQLCache(
        FIXTURES_DIR,
        graphql_config,
        endpoint_loader=EndpointLoader(http_client),
        settings=Settings(),
    )


@pytest.fixture(scope="session")
def introspection_result() -> dict[str, Any]:
    """The ``data`` object an endpoint serving the Star Wars schema would return."""
    schema = graphql.build_schema(SCHEMA_FILE.read_text(encoding="utf-8"))
    return dict(graphql.introspection_from_schema(schema))


@pytest.fixture()
def write_config(tmp_path: Path) -> Callable[[str], GraphQLConfig]:
    """Return a helper that writes a .graphqlrc.yml into tmp_path and loads it."""

    def _write(body: str) -> GraphQLConfig:
        (tmp_path / ".graphqlrc.yml").write_text(body, encoding="utf-8")
        return GraphQLConfig.from_root(tmp_path)

    return _write


@pytest.fixture()
def max_loop_stall() -> Callable[[Awaitable[Any]], Awaitable[float]]:
    """Return a helper that awaits a coroutine and reports the longest event-loop stall.

    A heartbeat task ticks every 10ms alongside the awaited work; the result is
    the largest gap seen between two ticks, in seconds.
    """

    async def _measure(work: Awaitable[Any]) -> float:
        gaps: list[float] = []
        finished = asyncio.Event()

        async def heartbeat() -> None:
            last = time.monotonic()
            while not finished.is_set():
                await asyncio.sleep(0.01)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        beat = asyncio.create_task(heartbeat())
        try:
            await work
        finally:
            finished.set()
            await beat
        return max(gaps, default=0.0)

    return _measure


@pytest.fixture()
def slow_glob(monkeypatch: pytest.MonkeyPatch) -> float:
    """Make every glob.glob call block for the returned number of seconds."""
    delay = 0.3
    original = glob.glob

    def _slow(*args: Any, **kwargs: Any) -> list[str]:
        time.sleep(delay)
        return original(*args, **kwargs)

    monkeypatch.setattr(glob, "glob", _slow)
    return delay
