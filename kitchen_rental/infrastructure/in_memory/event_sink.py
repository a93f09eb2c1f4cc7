import asyncio
from collections import defaultdict
from typing import Any

from kitchen_rental.application.interfaces.event_sink import EventSink


class InMemoryEventSink(EventSink):
    """Keeps every published event and fans them out to subscriber queues."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        self.events.append((topic, payload))
        for queue in self._subscribers.get(topic, []):
            queue.put_nowait(payload)

    def subscribe(self, topic: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[topic].append(queue)
        return queue

    def events_named(self, event: str) -> list[tuple[str, dict[str, Any]]]:
        return [(topic, payload) for topic, payload in self.events if payload.get("event") == event]
