from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.api.identity import Identity, get_identity
from divebook.domain.bookings import availability
from divebook.domain.bookings import schemas as booking_schemas
from divebook.domain.bookings import service as booking_service
from divebook.domain.bookings.statuses import parse_status
from divebook.domain.errors import ValidationFailed
from divebook.domain.payments import checkout
from divebook.infra import stripe_client as stripe_infra
from divebook.infra.db import get_db_session

router = APIRouter()


@router.get("/bookings/availability", response_model=booking_schemas.AvailabilityResponse)
async def get_availability(
    service_id: str = Query(..., min_length=1, max_length=36),
    date: str = Query(...),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.AvailabilityResponse:
    target_date = booking_service.parse_booking_date(date)
    day = await availability.list_day_slots(session, service_id, target_date)
    return booking_schemas.AvailabilityResponse(
        service_id=service_id,
        date=target_date,
        available=day.available,
        reason=day.reason,
        slots=[
            booking_schemas.SlotAvailability(time_slot=slot.time_slot.strftime("%H:%M"), available=slot.available)
            for slot in day.slots
        ],
    )


@router.post(
    "/bookings",
    response_model=booking_schemas.BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: booking_schemas.BookingCreateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingResponse:
    booking = await booking_service.create_booking(
        session,
        client_id=identity.profile_id,
        center_id=payload.center_id,
        service_id=payload.service_id,
        booking_date=booking_service.parse_booking_date(payload.booking_date),
        time_slot=booking_service.parse_time_slot(payload.time_slot),
        participants=payload.participants,
        client_note=payload.client_note,
    )
    return booking_schemas.BookingResponse.model_validate(booking)


@router.get("/bookings", response_model=booking_schemas.BookingListResponse)
async def list_bookings(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(booking_service.DEFAULT_LIST_LIMIT, ge=1, le=booking_service.MAX_LIST_LIMIT),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingListResponse:
    booking_status = None
    if status_filter:
        try:
            booking_status = parse_status(status_filter)
        except ValueError as exc:
            raise ValidationFailed(str(exc)) from exc

    bookings = await booking_service.list_client_bookings(
        session, identity.profile_id, status=booking_status, limit=limit
    )
    return booking_schemas.BookingListResponse(
        bookings=[booking_schemas.BookingResponse.model_validate(booking) for booking in bookings]
    )


@router.get("/bookings/{booking_id}", response_model=booking_schemas.BookingResponse)
async def get_booking(
    booking_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingResponse:
    booking = await booking_service.get_booking_for_viewer(session, booking_id, identity.profile_id)
    return booking_schemas.BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/checkout", response_model=booking_schemas.CheckoutResponse)
async def create_checkout(
    booking_id: str,
    http_request: Request,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.CheckoutResponse:
    stripe_client = stripe_infra.resolve_client(http_request.app.state)
    checkout_url = await checkout.initiate_checkout(session, stripe_client, booking_id, identity.profile_id)
    return booking_schemas.CheckoutResponse(booking_id=booking_id, checkout_url=checkout_url)


@router.post("/bookings/{booking_id}/confirm", response_model=booking_schemas.BookingResponse)
async def confirm_booking(
    booking_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingResponse:
    booking = await booking_service.confirm_booking(session, booking_id, identity.profile_id)
    return booking_schemas.BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=booking_schemas.BookingResponse)
async def cancel_booking(
    booking_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingResponse:
    booking = await booking_service.cancel_booking(session, booking_id, identity.profile_id)
    return booking_schemas.BookingResponse.model_validate(booking)
