"""
Per-key single-flight guard for generation requests.

While a request for a key is in flight, further triggers for the same key join it
and receive its result instead of issuing a duplicate request. The in-flight check
and the marker insertion happen with no suspension point in between, which makes
them atomic on the event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger


class SingleFlight:
    """In-flight markers keyed by module (or module + assessment variant)."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        existing = self._inflight.get(key)
        if existing is not None:
            logger.info(f"Generation for {key} already in progress; joining it")
            return await asyncio.shield(existing)

        future = asyncio.ensure_future(factory())
        self._inflight[key] = future
        try:
            return await asyncio.shield(future)
        finally:
            if future.done():
                self._inflight.pop(key, None)
            else:
                # Caller was cancelled; release the marker once the request finishes
                future.add_done_callback(lambda _f: self._inflight.pop(key, None))
