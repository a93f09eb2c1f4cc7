from datetime import date

from fastapi import APIRouter, Depends, Query, status

from kitchen_rental.api.dependencies import (
    get_actor,
    get_use_cases,
    require_operator,
)
from kitchen_rental.api.schemas.envelope import Envelope, PaginationMeta
from kitchen_rental.api.schemas.reservations import (
    AvailabilityOut,
    CreateBookingRequest,
    ReservationOut,
    UpdateBookingRequest,
)
from kitchen_rental.application.interfaces.reservation_repo import (
    Pagination,
    ReservationFilters,
)
from kitchen_rental.config import get_settings
from kitchen_rental.domain.entities.actor import Actor
from kitchen_rental.domain.entities.reservation import Reservation, ReservationStatus
from kitchen_rental.infrastructure.db.retry import retry_on_deadlock

router = APIRouter(prefix="/bookings")


def _out(reservation: Reservation) -> ReservationOut:
    return ReservationOut.model_validate(reservation)


@router.get("", response_model=Envelope[list[ReservationOut]])
async def list_bookings(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    status_filter: ReservationStatus | None = Query(default=None, alias="status"),
    customer_id: str | None = Query(default=None),
    equipment_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    settings = get_settings()
    filters = ReservationFilters(
        customer_id=customer_id,
        equipment_id=equipment_id,
        status=status_filter,
        start_from=start_date,
        end_until=end_date,
    )
    pagination = Pagination(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await use_cases["booking_engine"].list(filters, pagination, actor)
    return Envelope(
        status=status.HTTP_200_OK,
        data=[_out(r) for r in result.items],
        pagination=PaginationMeta(**result.to_dict()),
    )


@router.get("/my-bookings", response_model=Envelope[list[ReservationOut]])
async def my_bookings(
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    reservations = await use_cases["booking_engine"].list_for_customer(actor.actor_id)
    return Envelope(data=[_out(r) for r in reservations])


@router.get("/availability/{equipment_id}", response_model=Envelope[AvailabilityOut])
async def check_availability(
    equipment_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    use_cases=Depends(get_use_cases),
):
    available = await use_cases["booking_engine"].check_availability(
        equipment_id, start_date, end_date
    )
    return Envelope(
        data=AvailabilityOut(
            equipment_id=equipment_id,
            start_date=start_date,
            end_date=end_date,
            available=available,
        )
    )


@router.get("/{reservation_id}", response_model=Envelope[ReservationOut])
async def get_booking(
    reservation_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    reservation = await use_cases["booking_engine"].get(reservation_id, actor)
    return Envelope(data=_out(reservation))


@router.post(
    "",
    response_model=Envelope[ReservationOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    engine = use_cases["booking_engine"]
    command = payload.to_command(customer_id=actor.actor_id)
    reservation = await retry_on_deadlock(
        lambda: engine.create(command), operation="create booking"
    )
    return Envelope(
        status=status.HTTP_201_CREATED,
        message="Booking created successfully",
        data=_out(reservation),
    )


@router.put("/{reservation_id}", response_model=Envelope[ReservationOut])
async def update_booking(
    reservation_id: str,
    payload: UpdateBookingRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    engine = use_cases["booking_engine"]
    patch = payload.to_patch()
    reservation = await retry_on_deadlock(
        lambda: engine.update(reservation_id, patch, actor), operation="update booking"
    )
    return Envelope(message="Booking updated successfully", data=_out(reservation))


@router.patch("/{reservation_id}/cancel", response_model=Envelope[ReservationOut])
async def cancel_booking(
    reservation_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    reservation = await use_cases["booking_engine"].cancel(reservation_id, actor)
    return Envelope(message="Booking cancelled successfully", data=_out(reservation))


@router.patch("/{reservation_id}/confirm", response_model=Envelope[ReservationOut])
async def confirm_booking(
    reservation_id: str,
    actor: Actor = Depends(require_operator),
    use_cases=Depends(get_use_cases),
):
    reservation = await use_cases["booking_engine"].confirm(reservation_id, actor)
    return Envelope(message="Booking confirmed successfully", data=_out(reservation))


@router.patch("/{reservation_id}/start", response_model=Envelope[ReservationOut])
async def start_booking(
    reservation_id: str,
    actor: Actor = Depends(require_operator),
    use_cases=Depends(get_use_cases),
):
    reservation = await use_cases["booking_engine"].start(reservation_id, actor)
    return Envelope(message="Booking started successfully", data=_out(reservation))


@router.patch("/{reservation_id}/complete", response_model=Envelope[ReservationOut])
async def complete_booking(
    reservation_id: str,
    actor: Actor = Depends(require_operator),
    use_cases=Depends(get_use_cases),
):
    reservation = await use_cases["booking_engine"].complete(reservation_id, actor)
    return Envelope(message="Booking completed successfully", data=_out(reservation))


@router.delete("/{reservation_id}", response_model=Envelope[dict])
async def delete_booking(
    reservation_id: str,
    actor: Actor = Depends(require_operator),
    use_cases=Depends(get_use_cases),
):
    await use_cases["booking_engine"].delete(reservation_id, actor)
    return Envelope(message="Booking deleted successfully")
