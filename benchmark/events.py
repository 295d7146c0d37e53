"""Event sinks that decouple the orchestrator from its transport."""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

Event = Dict[str, Any]

EVENT_TYPES = ("start", "progress", "result", "complete", "error")


def format_sse(event: Event) -> str:
    """Render an event as one Server-Sent Events frame."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


class EventSink(ABC):
    """Receives run events in emission order."""

    closed: bool = False

    @abstractmethod
    async def emit(self, event: Event) -> None:
        """Deliver one event; may suspend until the consumer is ready."""

    async def close(self) -> None:
        self.closed = True


class NullSink(EventSink):
    """Discards events (batch mode)."""

    async def emit(self, event: Event) -> None:
        return None


class CollectingSink(EventSink):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[Event] = []

    async def emit(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.get("type") == event_type]


class QueueSink(EventSink):
    """Bounded queue between a running benchmark and a streaming consumer.

    ``emit`` blocks while the queue is full, so the producer never runs more
    than ``maxsize`` events ahead of the consumer.
    """

    _DONE = object()

    def __init__(self, maxsize: int = 16):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._finished = False

    async def emit(self, event: Event) -> None:
        if self.closed:
            return
        await self._queue.put(event)

    async def finish(self) -> None:
        """Signal the consumer that no more events follow.

        A closed sink has no consumer left, so nothing is queued.
        """
        if not self._finished and not self.closed:
            self._finished = True
            await self._queue.put(self._DONE)

    async def get(self) -> Optional[Event]:
        item = await self._queue.get()
        return None if item is self._DONE else item

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event
