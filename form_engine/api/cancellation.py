"""Caller-supplied cancellation handle for backend calls."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Optional, TypeVar

from form_engine.api.base import RequestCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cancels every backend call it guards once ``cancel()`` is called.

    One token may be shared by several concurrent calls; cancelling it aborts
    all of them.

    Usage:
        token = CancellationToken()
        encounter = await token.run(client.post(...))
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelledError(self.reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable*, aborting it if the token fires first."""
        if self.cancelled:
            # close the coroutine so it is not reported as never awaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelledError(self.reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            waiter.cancel()

        if task.cancelled():
            logger.info(f"Backend call cancelled: {self.reason}")
            raise RequestCancelledError(self.reason)
        return task.result()
