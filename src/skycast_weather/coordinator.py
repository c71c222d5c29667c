"""In-flight request registry: at most one outstanding fetch per key."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class RequestCoordinator(Generic[T]):
    """Share one pending task among every caller asking for the same key.

    Owned by whoever constructs it; tests build a fresh one per case.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[T]] = {}

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def get(self, key: str) -> asyncio.Task[T] | None:
        return self._pending.get(key)

    def pending_keys(self) -> list[str]:
        return sorted(self._pending)

    def begin(self, key: str, work: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Schedule ``work`` as the single in-flight task for ``key``."""
        if key in self._pending:
            work.close()
            raise RuntimeError(f"A request for {key!r} is already in flight.")
        task = asyncio.get_running_loop().create_task(self._run(key, work))
        self._pending[key] = task
        # A task cancelled before its first step never reaches _run's finally.
        task.add_done_callback(lambda done: self._discard(key, done))
        return task

    async def wait_idle(self) -> None:
        """Wait for every pending task to settle; their errors are not raised here."""
        while self._pending:
            await asyncio.gather(*self._pending.values(), return_exceptions=True)

    def complete(self, key: str) -> None:
        self._pending.pop(key, None)

    def _discard(self, key: str, task: asyncio.Task[T]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _run(self, key: str, work: Coroutine[Any, Any, T]) -> T:
        try:
            return await work
        finally:
            self.complete(key)
