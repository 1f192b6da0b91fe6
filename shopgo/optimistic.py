"""Optimistic update protocol.

A target exposes snapshot() / apply(mutation) / restore(snapshot) and a
version counter bumped by every write. OptimisticMutation drives one
mutation through it:

    begin()    snapshot the target, apply the change locally
    commit     await the server call
    rollback() restore the snapshot, unless something newer wrote the
               target after our apply (then the caller reconciles instead)
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Protocol, TypeVar

from shopgo.errors import MutationFailed, ShopGoError
from shopgo.logging import get_logger

logger = get_logger(__name__)

S = TypeVar("S")
T = TypeVar("T")


class OptimisticTarget(Protocol[S]):
    version: int

    def snapshot(self) -> S:
        ...

    def apply(self, mutation: Callable[[S], S]) -> None:
        ...

    def restore(self, snapshot: S) -> None:
        ...


class OptimisticMutation(Generic[S]):
    """One optimistic change against an OptimisticTarget."""

    def __init__(self, target: OptimisticTarget[S], mutation: Callable[[S], S]):
        self._target = target
        self._mutation = mutation
        self._snapshot: Optional[S] = None
        self._applied_version: Optional[int] = None
        self.rolled_back = False
        self.superseded = False

    def begin(self) -> None:
        self._snapshot = self._target.snapshot()
        self._target.apply(self._mutation)
        self._applied_version = self._target.version

    def rollback(self) -> bool:
        """
        Restore the snapshot taken in begin().

        Returns:
            False when a newer write reached the target after our apply; the
            snapshot would clobber it, so nothing is restored
        """
        if self._applied_version is None:
            raise RuntimeError("rollback() before begin()")
        if self._target.version != self._applied_version:
            self.superseded = True
            logger.debug("Rollback skipped, target changed since apply")
            return False
        self._target.restore(self._snapshot)
        self.rolled_back = True
        return True

    async def execute(self, call: Callable[[], Awaitable[T]], failure_message: str) -> T:
        """
        begin(), await call(), rollback on failure.

        Raises:
            MutationFailed: call() raised a ShopGoError (chained)
        """
        self.begin()
        try:
            return await call()
        except ShopGoError as e:
            self.rollback()
            raise MutationFailed(failure_message, code=e.code) from e
        except asyncio.CancelledError:
            self.rollback()
            raise
