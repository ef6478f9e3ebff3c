"""Keyed single-flight memo shared by the schema cache and the definition index.

A miss starts one build task per key; concurrent callers for the same key
await that task instead of starting their own. Callers wait through
``asyncio.shield`` so a cancelled caller abandons its wait without cancelling
the build others share, and a build either commits a complete value or
nothing.

Every ``invalidate`` bumps the key's generation. A build commits only if the
generation it started under is still current, so a build that was in flight
during an eviction can never repopulate the memo with stale data.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = structlog.get_logger()

T = TypeVar("T")


class KeyedMemo(Generic[T]):
    """Memoizes async builds per key. ``None`` results are returned, never stored."""

    def __init__(self, label: str) -> None:
        self._label = label
        self._values: dict[str, T] = {}
        self._inflight: dict[str, asyncio.Task[T | None]] = {}
        self._generations: dict[str, int] = {}

    async def get(self, key: str, build: Callable[[], Awaitable[T | None]]) -> T | None:
        value = self._values.get(key)
        if value is not None:
            log.debug("memo_hit", memo=self._label, key=key)
            return value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._build_and_commit(key, self._generations.get(key, 0), build),
                name=f"{self._label}:{key}",
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget_inflight(key, t))
        else:
            log.debug("memo_build_joined", memo=self._label, key=key)

        return await asyncio.shield(task)

    def peek(self, key: str) -> T | None:
        return self._values.get(key)

    def __len__(self) -> int:
        return len(self._values)

    def invalidate(self, key: str) -> bool:
        """Drop the key's value and orphan any in-flight build.

        Returns True if a value was removed.
        """
        self._generations[key] = self._generations.get(key, 0) + 1
        orphaned = self._inflight.pop(key, None) is not None
        removed = self._values.pop(key, None) is not None
        if removed or orphaned:
            log.info(
                "memo_evicted",
                memo=self._label,
                key=key,
                removed_value=removed,
                orphaned_build=orphaned,
            )
        return removed

    def clear(self) -> None:
        for key in list(self._values.keys() | self._inflight.keys()):
            self.invalidate(key)

    def _forget_inflight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved; waiters (if any) already received it
        if not task.cancelled():
            task.exception()

    async def _build_and_commit(
        self,
        key: str,
        generation: int,
        build: Callable[[], Awaitable[T | None]],
    ) -> T | None:
        value = await build()
        if value is None:
            return None
        if self._generations.get(key, 0) != generation:
            log.info("memo_build_discarded", memo=self._label, key=key, reason="invalidated")
            return value
        self._values[key] = value
        return value
