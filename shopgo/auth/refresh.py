"""Credential refresh state machine.

Tracks the one shared in-flight refresh and the teardown guard:

    IDLE --refresh()--> IN_FLIGHT --settled--> IDLE
    IDLE/IN_FLIGHT --tear_down()--> TORN_DOWN --reset()--> IDLE

Only the methods below touch this state. An instance is injected into the
API client and the session store; nothing is module-global.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from shopgo.logging import get_logger

logger = get_logger(__name__)


class RefreshPhase(str, Enum):
    """Observable state of the coordinator."""
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    TORN_DOWN = "torn_down"


class RefreshCoordinator:
    """Single-flight credential refresh plus idempotent teardown guard."""

    def __init__(self) -> None:
        self._inflight: Optional["asyncio.Task[str]"] = None
        self._torn_down = False

    @property
    def phase(self) -> RefreshPhase:
        if self._torn_down:
            return RefreshPhase.TORN_DOWN
        if self._inflight is not None:
            return RefreshPhase.IN_FLIGHT
        return RefreshPhase.IDLE

    @property
    def is_torn_down(self) -> bool:
        return self._torn_down

    async def refresh(
        self,
        fetch: Callable[[], Awaitable[str]],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Return a fresh credential, sharing one call among concurrent callers.

        The first caller starts `fetch` as a task; callers arriving while it
        runs await the same task. The task is shielded, so cancelling a
        waiter does not abort the refresh. The reference is dropped when the
        task settles, so the next caller after that starts a new refresh.

        Args:
            fetch: Coroutine function performing the refresh call
            timeout: Optional bound in seconds (asyncio.TimeoutError on expiry)

        Returns:
            The new access credential
        """
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._run(fetch, timeout))
            task.add_done_callback(_consume_result)
            self._inflight = task
            logger.debug("Credential refresh started")
        else:
            logger.debug("Joining in-flight credential refresh")
        return await asyncio.shield(task)

    async def _run(self, fetch: Callable[[], Awaitable[str]], timeout: Optional[float]) -> str:
        try:
            if timeout is not None:
                return await asyncio.wait_for(fetch(), timeout)
            return await fetch()
        finally:
            self._inflight = None

    def tear_down(self) -> bool:
        """
        Flip the teardown guard.

        Returns:
            True for the one caller that performed the transition, False for
            every caller that found it already torn down
        """
        if self._torn_down:
            return False
        self._torn_down = True
        return True

    def reset(self) -> None:
        """Re-arm refresh after a fresh, successful authentication."""
        if self._torn_down:
            logger.debug("Teardown guard reset")
        self._torn_down = False


def _consume_result(task: "asyncio.Task[str]") -> None:
    # Waiters may all have been cancelled; retrieve the outcome so asyncio
    # does not report an unretrieved exception.
    if not task.cancelled():
        task.exception()
