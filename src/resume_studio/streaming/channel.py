"""Single-writer channel carrying progress events to one consumer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from resume_studio.models.events import ProgressEvent, is_terminal

logger = logging.getLogger(__name__)

_CLOSED = object()


class EventChannel:
    """Queue of progress events with an intrinsic closed state.

    ``send`` returns False and drops the event once the channel is closed,
    including after a terminal event has been sent, so at most one terminal
    event ever reaches the consumer and nothing follows it. ``close`` may be
    called any number of times from the producer or the transport.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.sent = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: ProgressEvent) -> bool:
        if self._closed:
            self.dropped += 1
            logger.debug("Dropped %s event on closed channel", event.type)
            return False
        self._queue.put_nowait(event)
        self.sent += 1
        if is_terminal(event):
            self.close()
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def drain(self) -> list[ProgressEvent]:
        """Collect every event until the channel closes."""
        return [event async for event in self]
