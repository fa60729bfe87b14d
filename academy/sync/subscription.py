"""
Cancellable subscription handles.

Long-lived listeners (module list, auth state) are acquired as a handle and must be
released with ``close()`` (or by leaving a ``with`` / ``async with`` block).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")

_CLOSED = object()


class Subscription:
    """Handle for a registered listener. Closing is idempotent."""

    def __init__(self, on_close: Callable[[], None] | None = None):
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StreamSubscription(Subscription, Generic[T]):
    """
    Subscription that is also an async stream of values.

    Producers call ``push()`` / ``fail()`` from the event loop; consumers iterate
    with ``async for``. Iteration ends when the handle is closed and raises the
    error passed to ``fail()``.
    """

    def __init__(self, on_close: Callable[[], None] | None = None):
        super().__init__(on_close)
        self._queue: asyncio.Queue = asyncio.Queue()

    def push(self, value: T) -> None:
        if not self.closed:
            self._queue.put_nowait(value)

    def fail(self, error: BaseException) -> None:
        if self.closed:
            return
        logger.error(f"Subscription failed: {error}")
        self._queue.put_nowait(error)
        super().close()

    def close(self) -> None:
        if not self.closed:
            self._queue.put_nowait(_CLOSED)
        super().close()

    async def next(self) -> T:
        """Wait for the next value."""
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    def __aiter__(self) -> StreamSubscription[T]:
        return self

    async def __anext__(self) -> T:
        return await self.next()

    async def __aenter__(self) -> StreamSubscription[T]:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
