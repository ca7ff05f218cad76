from __future__ import annotations

import asyncio
from typing import cast

from blast.metrics import RequestOutcome

_CLOSED = object()


class ResultChannel:
    """Many-writer, single-reader conduit from workers to the aggregator.

    Each outcome is delivered exactly once; no ordering is promised. The
    reader's ``async for`` ends after ``close()``, which the dispatcher calls
    only once every writer has been joined.
    """

    def __init__(self, capacity: int) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, outcome: RequestOutcome) -> None:
        if self._closed:
            msg = "Cannot send on a closed result channel"
            raise RuntimeError(msg)
        await self._queue.put(outcome)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    def __aiter__(self) -> ResultChannel:
        return self

    async def __anext__(self) -> RequestOutcome:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return cast(RequestOutcome, item)
