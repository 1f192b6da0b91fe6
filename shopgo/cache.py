"""Cached server query with invalidation.

Holds the client's copy of server-owned state (the cart) and implements the
optimistic-target protocol over it. Every write bumps `version`; a fetch
whose result would land after an optimistic write that happened during the
fetch is discarded, the same way an in-flight query is cancelled before an
optimistic update.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from shopgo.errors import FetchFailed, ShopGoError
from shopgo.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CachedQuery(Generic[T]):
    """
    Last-known value of one server query.

    Args:
        name: Query name for logs
        fetcher: Coroutine function loading the value from the server
        failure_message: FetchFailed message
    """

    def __init__(self, name: str, fetcher: Callable[[], Awaitable[T]], failure_message: str):
        self.name = name
        self._fetcher = fetcher
        self._failure_message = failure_message
        self._data: Optional[T] = None
        self._stale = True
        self._inflight: Optional["asyncio.Task[T]"] = None
        self.version = 0

    @property
    def data(self) -> Optional[T]:
        return self._data

    @property
    def is_stale(self) -> bool:
        return self._stale

    # ==================== OPTIMISTIC TARGET ====================

    def snapshot(self) -> Optional[T]:
        return self._data

    def apply(self, mutation: Callable[[Optional[T]], T]) -> None:
        self._data = mutation(self._data)
        self.version += 1

    def restore(self, snapshot: Optional[T]) -> None:
        self._data = snapshot
        self.version += 1

    # ==================== QUERY ====================

    def set_data(self, data: T) -> None:
        self._data = data
        self._stale = False
        self.version += 1

    def invalidate(self) -> None:
        """Mark stale; the next get() refetches."""
        self._stale = True

    def reset(self) -> None:
        """Forget everything (logout)."""
        self._data = None
        self._stale = True
        self.version += 1

    async def get(self) -> Optional[T]:
        """Cached value, refetched first when stale."""
        if not self._stale and self._data is not None:
            return self._data
        return await self.refetch()

    async def refetch(self) -> Optional[T]:
        """
        Load from the server. Concurrent callers share one fetch.

        Raises:
            FetchFailed: cached value is left untouched
        """
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._fetch())
            task.add_done_callback(lambda t: t.cancelled() or t.exception())
            self._inflight = task
        return await asyncio.shield(task)

    async def _fetch(self) -> Optional[T]:
        started_at = self.version
        try:
            result = await self._fetcher()
        except ShopGoError as e:
            logger.warning("Fetching %s failed: %s", self.name, e.message)
            raise FetchFailed(self._failure_message, code=e.code) from e
        finally:
            self._inflight = None
        if self.version != started_at:
            # An optimistic write landed meanwhile; keep it, stay stale
            logger.debug("Discarding %s fetch overtaken by a local write", self.name)
            self._stale = True
            return self._data
        self.set_data(result)
        return result
