import logging
from typing import Any

from kitchen_rental.application.interfaces.event_sink import EventSink

logger = logging.getLogger(__name__)


class LoggingEventSink(EventSink):
    """Writes every notification to the log instead of a live transport."""

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        logger.info(
            "Event published",
            extra={"room": topic, "event": payload.get("event"), "payload": payload},
        )
