import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Callable, Sequence

from kitchen_rental.application.conflict_detector import ConflictDetector
from kitchen_rental.application.dtos.reservation_dto import (
    CreateReservationCommand,
    ReservationPatch,
)
from kitchen_rental.application.interfaces.clock import Clock
from kitchen_rental.application.interfaces.equipment_lookup import EquipmentLookup
from kitchen_rental.application.interfaces.reservation_repo import (
    Page,
    Pagination,
    ReservationFilters,
    ReservationRepo,
)
from kitchen_rental.application.interfaces.transaction_manager import TransactionManager
from kitchen_rental.application.notifications import (
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    BOOKING_DELETED,
    BOOKING_STARTED,
    BOOKING_UPDATED,
    BookingNotifier,
)
from kitchen_rental.domain.date_rules import DEFAULT_MAX_ADVANCE_DAYS, validate_window
from kitchen_rental.domain.entities.actor import Actor
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot
from kitchen_rental.domain.entities.reservation import (
    Reservation,
    ReservationAction,
    ReservationStatus,
    can_transition,
    next_status,
)
from kitchen_rental.domain.errors import (
    AuthorizationError,
    CancellationWindowClosedError,
    DomainError,
    EquipmentNotFoundError,
    EquipmentUnavailableError,
    InvalidReservationStatusError,
    ReservationConflictError,
    ReservationNotFoundError,
    UpstreamError,
)
from kitchen_rental.domain.pricing import compute_amount
from kitchen_rental.infrastructure.locks import EquipmentLocks

EQUIPMENT_SERVICE = "equipment_catalog"


def _new_reservation_id() -> str:
    return str(uuid.uuid4())


class BookingLifecycleEngine:
    """
    State machine and business rules of a reservation.

    Every write that touches an equipment timeline (create, date change)
    runs the conflict check and the persist step under the per-equipment
    lock and inside one transaction, after ``lock_timeline`` has serialized
    concurrent writers at the store level.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        equipment_lookup: EquipmentLookup,
        notifier: BookingNotifier,
        clock: Clock,
        transaction_manager: TransactionManager,
        equipment_locks: EquipmentLocks,
        cancellation_notice_hours: int = 24,
        max_advance_days: int = DEFAULT_MAX_ADVANCE_DAYS,
        upstream_timeout_seconds: float = 5.0,
        id_generator: Callable[[], str] = _new_reservation_id,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._equipment_lookup = equipment_lookup
        self._notifier = notifier
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._equipment_locks = equipment_locks
        self._cancellation_notice_hours = cancellation_notice_hours
        self._max_advance_days = max_advance_days
        self._upstream_timeout_seconds = upstream_timeout_seconds
        self._id_generator = id_generator
        self._conflict_detector = ConflictDetector(reservation_repo)
        self._logger = logging.getLogger(__name__)

    # === Create / read ===

    async def create(self, command: CreateReservationCommand) -> Reservation:
        now = self._clock.now()
        window = validate_window(
            command.start_date, command.end_date, now, self._max_advance_days
        )

        equipment = await self._require_equipment(command.equipment_id)
        if not equipment.is_available:
            raise EquipmentUnavailableError(equipment.id, equipment.status.value)

        total_amount = compute_amount(equipment.daily_rate, window.start, window.end)

        async with self._equipment_locks.hold(command.equipment_id):
            async with self._transaction_manager.start():
                await self._reservation_repo.lock_timeline(command.equipment_id)
                if await self._conflict_detector.has_conflict(
                    command.equipment_id, window.start, window.end
                ):
                    raise ReservationConflictError(
                        command.equipment_id, window.start, window.end
                    )

                reservation = await self._reservation_repo.create(
                    Reservation(
                        id=self._id_generator(),
                        customer_id=command.customer_id,
                        equipment_id=command.equipment_id,
                        start_date=window.start,
                        end_date=window.end,
                        delivery_address=command.delivery_address,
                        notes=command.notes,
                        total_amount=total_amount,
                        currency=equipment.currency,
                        status=ReservationStatus.PENDING,
                        created_at=now,
                        updated_at=now,
                    )
                )

        self._logger.info(
            "Reservation created",
            extra={
                "reservation_id": reservation.id,
                "customer_id": reservation.customer_id,
                "equipment_id": reservation.equipment_id,
                "total_amount": str(reservation.total_amount),
            },
        )
        await self._notifier.reservation_event(BOOKING_CREATED, reservation)
        return reservation

    async def get(self, reservation_id: str, actor: Actor) -> Reservation:
        reservation = await self._require(reservation_id)
        self._authorize_access(reservation, actor, "view")
        return reservation

    async def list(
        self,
        filters: ReservationFilters,
        pagination: Pagination,
        actor: Actor,
    ) -> Page[Reservation]:
        if not actor.is_operator:
            filters = replace(filters, customer_id=actor.actor_id)
        return await self._reservation_repo.list(filters, pagination)

    async def list_for_customer(self, customer_id: str) -> Sequence[Reservation]:
        return await self._reservation_repo.list_by_customer(customer_id)

    # === Content updates ===

    async def update(
        self,
        reservation_id: str,
        patch: ReservationPatch,
        actor: Actor,
    ) -> Reservation:
        reservation = await self._require(reservation_id)
        self._authorize_access(reservation, actor, "update")
        self._ensure_not_terminal(reservation, "update")

        if patch.is_empty:
            return reservation

        if patch.changes_window:
            updated = await self._update_with_window(reservation, patch)
        else:
            async with self._transaction_manager.start():
                current = await self._require(reservation_id)
                self._ensure_not_terminal(current, "update")
                self._apply_content(current, patch)
                updated = await self._reservation_repo.update(current)

        self._logger.info(
            "Reservation updated",
            extra={
                "reservation_id": updated.id,
                "actor_id": actor.actor_id,
                "window_changed": patch.changes_window,
            },
        )
        await self._notifier.reservation_event(BOOKING_UPDATED, updated)
        return updated

    async def _update_with_window(
        self, reservation: Reservation, patch: ReservationPatch
    ) -> Reservation:
        if not reservation.window_is_mutable:
            raise InvalidReservationStatusError(
                current_status=reservation.status.value,
                operation="update",
                message=f"Cannot change dates of a {reservation.status.value} booking",
            )

        now = self._clock.now()
        start, end = self._merge_window(reservation, patch)
        window = validate_window(start, end, now, self._max_advance_days)

        equipment = await self._require_equipment(reservation.equipment_id)
        total_amount = compute_amount(equipment.daily_rate, window.start, window.end)

        async with self._equipment_locks.hold(reservation.equipment_id):
            async with self._transaction_manager.start():
                await self._reservation_repo.lock_timeline(reservation.equipment_id)
                # Re-read under the lock: a concurrent transition may have landed.
                current = await self._require(reservation.id)
                if await self._conflict_detector.has_conflict(
                    current.equipment_id, window.start, window.end, exclude_id=current.id
                ):
                    raise ReservationConflictError(
                        current.equipment_id, window.start, window.end
                    )
                current.reschedule(window, total_amount, now)
                self._apply_content(current, patch)
                return await self._reservation_repo.update(current)

    @staticmethod
    def _merge_window(reservation: Reservation, patch: ReservationPatch) -> tuple[date, date]:
        """Fill the bound the patch leaves out from the stored record."""
        start = patch.start_date if patch.start_date is not None else reservation.start_date
        end = patch.end_date if patch.end_date is not None else reservation.end_date
        return start, end

    def _apply_content(self, reservation: Reservation, patch: ReservationPatch) -> None:
        if patch.delivery_address is not None:
            reservation.delivery_address = patch.delivery_address
        if patch.notes is not None:
            reservation.notes = patch.notes
        reservation.updated_at = self._clock.now()

    # === Transitions ===

    async def cancel(self, reservation_id: str, actor: Actor) -> Reservation:
        reservation = await self._require(reservation_id)
        self._authorize_access(reservation, actor, "cancel")
        next_status(reservation.status, ReservationAction.CANCEL)

        if not actor.is_operator:
            hours_until_start = reservation.hours_until_start(self._clock.now())
            if hours_until_start < self._cancellation_notice_hours:
                raise CancellationWindowClosedError(
                    self._cancellation_notice_hours, hours_until_start
                )

        cancelled = await self._transition(reservation_id, ReservationAction.CANCEL)
        self._logger.info(
            "Reservation cancelled",
            extra={"reservation_id": reservation_id, "actor_id": actor.actor_id},
        )
        await self._notifier.reservation_event(BOOKING_CANCELLED, cancelled)
        return cancelled

    async def confirm(self, reservation_id: str, actor: Actor) -> Reservation:
        self._require_operator(actor, "confirm")
        confirmed = await self._transition(reservation_id, ReservationAction.CONFIRM)
        await self._notifier.reservation_event(
            BOOKING_CONFIRMED, confirmed, to_operators=False
        )
        return confirmed

    async def start(self, reservation_id: str, actor: Actor) -> Reservation:
        self._require_operator(actor, "start")
        reservation = await self._require(reservation_id)
        next_status(reservation.status, ReservationAction.START)

        if self._clock.now() < reservation.starts_at:
            raise InvalidReservationStatusError(
                current_status=reservation.status.value,
                operation="start",
                message="Cannot start booking before start date",
            )

        started = await self._transition(reservation_id, ReservationAction.START)
        await self._notifier.reservation_event(BOOKING_STARTED, started)
        return started

    async def complete(self, reservation_id: str, actor: Actor) -> Reservation:
        self._require_operator(actor, "complete")
        completed = await self._transition(reservation_id, ReservationAction.COMPLETE)
        await self._notifier.reservation_event(BOOKING_COMPLETED, completed)
        return completed

    async def delete(self, reservation_id: str, actor: Actor) -> None:
        self._require_operator(actor, "delete")
        reservation = await self._require(reservation_id)
        if not reservation.is_deletable:
            raise InvalidReservationStatusError(
                current_status=reservation.status.value,
                operation="delete",
                message="Only pending or cancelled bookings can be deleted. Cancel the booking first",
            )

        async with self._transaction_manager.start():
            await self._reservation_repo.delete(reservation_id)

        self._logger.info(
            "Reservation deleted",
            extra={"reservation_id": reservation_id, "actor_id": actor.actor_id},
        )
        await self._notifier.reservation_event(
            BOOKING_DELETED, reservation, to_customer=False
        )

    # === System-originated transitions (payment outcomes) ===

    async def confirm_from_payment(self, reservation_id: str) -> Reservation:
        """Confirm a pending reservation; any other state is left untouched."""
        confirmed = await self._transition_if_allowed(reservation_id, ReservationAction.CONFIRM)
        if confirmed is None:
            return await self._require(reservation_id)
        await self._notifier.reservation_event(
            BOOKING_CONFIRMED, confirmed, to_operators=False
        )
        return confirmed

    async def cancel_from_refund(self, reservation_id: str) -> Reservation:
        """Cancel after a full refund if the reservation is still cancellable."""
        cancelled = await self._transition_if_allowed(reservation_id, ReservationAction.CANCEL)
        if cancelled is None:
            return await self._require(reservation_id)
        await self._notifier.reservation_event(BOOKING_CANCELLED, cancelled)
        return cancelled

    # === Availability ===

    async def check_availability(
        self,
        equipment_id: str,
        start: date,
        end: date,
    ) -> bool:
        window = validate_window(start, end, self._clock.now(), self._max_advance_days)
        equipment = await self._require_equipment(equipment_id)
        if not equipment.is_available:
            return False
        return not await self._conflict_detector.has_conflict(
            equipment_id, window.start, window.end
        )

    # === Helpers ===

    async def _transition(
        self, reservation_id: str, action: ReservationAction
    ) -> Reservation:
        async with self._transaction_manager.start():
            current = await self._require(reservation_id)
            target = next_status(current.status, action)
            updated = await self._reservation_repo.update_status(
                reservation_id,
                target,
                updated_at=self._clock.now(),
                expected_status=current.status,
            )
            if updated is None:
                latest = await self._require(reservation_id)
                raise InvalidReservationStatusError(
                    current_status=latest.status.value,
                    operation=action.value,
                    message=(
                        f"Booking moved to {latest.status.value} while trying to "
                        f"{action.value} it"
                    ),
                )

        self._log_transition(current.status, updated, action)
        return updated

    async def _transition_if_allowed(
        self, reservation_id: str, action: ReservationAction
    ) -> Reservation | None:
        """
        Apply ``action`` when the stored status allows it, else do nothing.

        Returns None when the action does not apply, including when a
        concurrent writer changed the status between the read and the write.
        """
        async with self._transaction_manager.start():
            current = await self._require(reservation_id)
            updated = None
            if can_transition(current.status, action):
                updated = await self._reservation_repo.update_status(
                    reservation_id,
                    next_status(current.status, action),
                    updated_at=self._clock.now(),
                    expected_status=current.status,
                )

        if updated is None:
            self._logger.info(
                "Reservation transition skipped",
                extra={
                    "reservation_id": reservation_id,
                    "status": current.status.value,
                    "action": action.value,
                },
            )
            return None

        self._log_transition(current.status, updated, action)
        return updated

    def _log_transition(
        self, from_status: ReservationStatus, updated: Reservation, action: ReservationAction
    ) -> None:
        self._logger.info(
            "Reservation status changed",
            extra={
                "reservation_id": updated.id,
                "from_status": from_status.value,
                "to_status": updated.status.value,
                "action": action.value,
            },
        )

    async def _require(self, reservation_id: str) -> Reservation:
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    async def _require_equipment(self, equipment_id: str) -> EquipmentSnapshot:
        try:
            equipment = await asyncio.wait_for(
                self._equipment_lookup.get(equipment_id),
                timeout=self._upstream_timeout_seconds,
            )
        except DomainError:
            raise
        except asyncio.TimeoutError as exc:
            self._logger.warning(
                "Equipment lookup timed out",
                extra={"equipment_id": equipment_id, "timeout": self._upstream_timeout_seconds},
            )
            raise UpstreamError(EQUIPMENT_SERVICE, "Equipment lookup timed out") from exc
        except Exception as exc:
            self._logger.error(
                "Equipment lookup failed",
                exc_info=exc,
                extra={"equipment_id": equipment_id},
            )
            raise UpstreamError(EQUIPMENT_SERVICE) from exc

        if equipment is None:
            raise EquipmentNotFoundError(equipment_id)
        return equipment

    @staticmethod
    def _authorize_access(reservation: Reservation, actor: Actor, operation: str) -> None:
        if not actor.can_access(reservation.customer_id):
            raise AuthorizationError(f"Not authorized to {operation} this booking")

    @staticmethod
    def _require_operator(actor: Actor, operation: str) -> None:
        if not actor.is_operator:
            raise AuthorizationError(f"Only operators can {operation} bookings")

    @staticmethod
    def _ensure_not_terminal(reservation: Reservation, operation: str) -> None:
        if reservation.is_terminal:
            raise InvalidReservationStatusError(
                current_status=reservation.status.value,
                operation=operation,
                message=f"Cannot {operation} a {reservation.status.value} booking",
            )
