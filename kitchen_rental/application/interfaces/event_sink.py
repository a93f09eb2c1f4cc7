from typing import Any

ADMIN_ROOM = "admin"


def user_room(customer_id: str) -> str:
    return f"user:{customer_id}"


class EventSink:
    """
    Notification transport (websocket hub, queue, log).

    ``topic`` is a room name such as ``user:<id>`` or ``admin``.
    """

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError
