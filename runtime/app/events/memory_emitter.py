from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from runtime.app.events.emitter import RenderEventEmitter
from runtime.app.events.models import RenderEvent

logger = logging.getLogger(__name__)


class MemoryQueueEventEmitter(RenderEventEmitter):
    """
    In-memory async event emitter suitable for SSE streaming.

    Single consumer, ordered, and closed by the first terminal event.
    The terminal event is kept so the render's resulting document stays
    reachable after the stream has been drained.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[RenderEvent]]" = asyncio.Queue()
        self._closed = False
        self._terminal: Optional[RenderEvent] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_event(self) -> Optional[RenderEvent]:
        return self._terminal

    @property
    def state(self) -> Optional[str]:
        """User-visible render state, once the render has finished."""
        if self._terminal is None or not self._terminal.details:
            return None
        return self._terminal.details.get("state")

    @property
    def document(self) -> Optional[str]:
        """Host document as the render left it, once it has finished."""
        if self._terminal is None or not self._terminal.details:
            return None
        return self._terminal.details.get("document")

    async def emit(self, event: RenderEvent) -> None:
        if self._closed:
            logger.debug(
                "render_event_after_close",
                extra={
                    "render_id": event.render_id,
                    "event_type": event.event_type.value,
                },
            )
            return

        if event.is_terminal:
            self._terminal = event

        try:
            await self._queue.put(event)
        except Exception:
            logger.warning(
                "render_event_dropped",
                extra={"event_type": event.event_type.value},
            )
            return

        if event.is_terminal:
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    async def stream(self) -> AsyncIterator[RenderEvent]:
        """
        Async generator yielding emitted events in order.
        """
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event
