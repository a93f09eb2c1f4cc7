"""
Booking and payment notifications.

Events are delivered best-effort: a failing or slow sink is logged and never
fails the operation that produced the event.
"""

import asyncio
import logging
from typing import Any

from kitchen_rental.application.interfaces.clock import Clock
from kitchen_rental.application.interfaces.event_sink import ADMIN_ROOM, EventSink, user_room
from kitchen_rental.domain.entities.payment import Payment
from kitchen_rental.domain.entities.reservation import Reservation

BOOKING_CREATED = "booking:created"
BOOKING_UPDATED = "booking:updated"
BOOKING_CANCELLED = "booking:cancelled"
BOOKING_CONFIRMED = "booking:confirmed"
BOOKING_STARTED = "booking:started"
BOOKING_COMPLETED = "booking:completed"
BOOKING_DELETED = "booking:deleted"

PAYMENT_INTENT_CREATED = "payment:intent_created"
PAYMENT_SUCCEEDED = "payment:succeeded"
PAYMENT_FAILED = "payment:failed"
PAYMENT_REFUNDED = "payment:refunded"

_MESSAGES = {
    BOOKING_CREATED: "Booking created",
    BOOKING_UPDATED: "Booking updated",
    BOOKING_CANCELLED: "Booking cancelled",
    BOOKING_CONFIRMED: "Your booking has been confirmed",
    BOOKING_STARTED: "Your rental has started",
    BOOKING_COMPLETED: "Your rental has been completed",
    BOOKING_DELETED: "Booking deleted",
    PAYMENT_INTENT_CREATED: "Payment intent created",
    PAYMENT_SUCCEEDED: "Payment received",
    PAYMENT_FAILED: "Payment failed",
    PAYMENT_REFUNDED: "Payment refunded",
}


class BookingNotifier:
    def __init__(
        self,
        event_sink: EventSink,
        clock: Clock,
        publish_timeout_seconds: float = 2.0,
    ) -> None:
        self._event_sink = event_sink
        self._clock = clock
        self._publish_timeout_seconds = publish_timeout_seconds
        self._logger = logging.getLogger(__name__)

    async def reservation_event(
        self,
        event: str,
        reservation: Reservation,
        to_customer: bool = True,
        to_operators: bool = True,
    ) -> None:
        payload = self._build_payload(event, "reservation", reservation.to_dict())
        rooms = []
        if to_customer:
            rooms.append(user_room(reservation.customer_id))
        if to_operators:
            rooms.append(ADMIN_ROOM)
        await self._publish_all(rooms, payload, reservation_id=reservation.id)

    async def payment_event(
        self,
        event: str,
        payment: Payment,
        customer_id: str,
        to_operators: bool = False,
    ) -> None:
        payload = self._build_payload(event, "payment", payment.to_dict())
        rooms = [user_room(customer_id)]
        if to_operators:
            rooms.append(ADMIN_ROOM)
        await self._publish_all(rooms, payload, reservation_id=payment.reservation_id)

    def _build_payload(self, event: str, key: str, body: dict[str, Any]) -> dict[str, Any]:
        return {
            "event": event,
            key: body,
            "message": _MESSAGES.get(event, event),
            "timestamp": self._clock.now().isoformat(),
        }

    async def _publish_all(
        self,
        rooms: list[str],
        payload: dict[str, Any],
        reservation_id: str | None,
    ) -> None:
        for room in rooms:
            try:
                await asyncio.wait_for(
                    self._event_sink.publish(room, payload),
                    timeout=self._publish_timeout_seconds,
                )
            except Exception:
                self._logger.exception(
                    "Failed to publish event",
                    extra={
                        "event": payload["event"],
                        "room": room,
                        "reservation_id": reservation_id,
                    },
                )
