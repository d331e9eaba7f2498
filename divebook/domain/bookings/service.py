import logging
from datetime import date, datetime, time, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.bookings import availability
from divebook.domain.bookings.db_models import Booking
from divebook.domain.bookings.statuses import BookingStatus, allowed_sources, can_transition
from divebook.domain.centers import service as center_service
from divebook.domain.errors import ConflictError, InvalidTransition, NotFoundError, PermissionDenied, ValidationFailed
from divebook.domain.payments.commission import compute_commission, compute_total
from divebook.domain.platform_config import service as platform_config_service
from divebook.infra.db import classify_integrity_error
from divebook.infra.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

SLOT_TAKEN_DETAIL = "This time slot is already booked"
CONCURRENT_UPDATE_DETAIL = "Booking was modified concurrently, reload and retry"

_TIMESTAMP_COLUMNS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.CANCELLED: "cancelled_at",
}


def parse_booking_date(raw: str) -> date:
    try:
        return datetime.strptime(raw.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as exc:
        raise ValidationFailed("Invalid date format, expected YYYY-MM-DD") from exc


def parse_time_slot(raw: str) -> time:
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except (ValueError, AttributeError) as exc:
        raise ValidationFailed("Invalid time slot format, expected HH:MM") from exc


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


async def create_booking(
    session: AsyncSession,
    *,
    client_id: str,
    center_id: str,
    service_id: str,
    booking_date: date,
    time_slot: time,
    participants: int,
    client_note: str | None = None,
) -> Booking:
    center = await center_service.get_center(session, center_id)
    service = await center_service.get_service(session, service_id)
    if service.center_id != center.center_id:
        raise ValidationFailed("Service does not belong to this center")
    if not service.is_active:
        raise ValidationFailed("Service is not available for booking")

    minimum, maximum = service.capacity_bounds
    if participants < minimum or participants > maximum:
        raise ValidationFailed(f"Participants must be between {minimum} and {maximum}")
    if booking_date < _today():
        raise ValidationFailed("Cannot book a date in the past")
    if await center_service.is_date_blocked(session, center.center_id, booking_date):
        raise ValidationFailed("This date is not available")
    if await availability.is_slot_taken(session, service.service_id, booking_date, time_slot):
        metrics.record_booking("conflict")
        raise ConflictError(SLOT_TAKEN_DETAIL)

    rate = await platform_config_service.get_commission_rate(session)
    total_price = compute_total(service.price, participants)
    booking = Booking(
        client_id=client_id,
        center_id=center.center_id,
        service_id=service.service_id,
        booking_date=booking_date,
        time_slot=time_slot,
        participants=participants,
        unit_price=service.price,
        total_price=total_price,
        commission_rate=rate,
        commission_amount=compute_commission(total_price, rate),
        currency=(service.currency or center.currency or "EUR").upper(),
        client_note=client_note,
        status=BookingStatus.PENDING,
    )
    session.add(booking)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        kind = classify_integrity_error(exc)
        if kind == "unique":
            metrics.record_booking("conflict")
            logger.info(
                "booking_slot_conflict",
                extra={
                    "extra": {
                        "service_id": service_id,
                        "booking_date": booking_date.isoformat(),
                        "time_slot": time_slot.strftime("%H:%M"),
                    }
                },
            )
            raise ConflictError(SLOT_TAKEN_DETAIL) from exc
        if kind == "foreign_key":
            raise NotFoundError("Client profile not found") from exc
        raise

    await session.refresh(booking)
    metrics.record_booking("created")
    logger.info(
        "booking_created",
        extra={
            "extra": {
                "booking_id": booking.booking_id,
                "center_id": booking.center_id,
                "service_id": booking.service_id,
                "total_price": str(booking.total_price),
                "commission_rate": str(booking.commission_rate),
            }
        },
    )
    return booking


async def get_booking(session: AsyncSession, booking_id: str) -> Booking:
    booking = await session.get(Booking, booking_id)
    if booking is None or booking.deleted_at is not None:
        raise NotFoundError("Booking not found")
    return booking


async def get_booking_for_viewer(session: AsyncSession, booking_id: str, requester_id: str) -> Booking:
    booking = await get_booking(session, booking_id)
    if booking.client_id == requester_id:
        return booking
    if await center_service.is_center_member(session, booking.center_id, requester_id):
        return booking
    raise PermissionDenied("Not allowed to view this booking")


async def list_client_bookings(
    session: AsyncSession,
    client_id: str,
    *,
    status: BookingStatus | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[Booking]:
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    stmt = select(Booking).where(Booking.client_id == client_id, Booking.deleted_at.is_(None))
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    stmt = stmt.order_by(Booking.booking_date.desc(), Booking.time_slot.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def apply_transition(session: AsyncSession, booking_id: str, target: BookingStatus) -> bool:
    """Move a booking to ``target`` with a status-guarded single-row update.

    The WHERE clause only matches rows currently in a status from which
    ``target`` is reachable, so of two racing transitions at most one changes
    the row. Returns False when no row matched.
    """
    now = datetime.now(tz=timezone.utc)
    values: dict[str, object] = {"status": target, "updated_at": now}
    timestamp_column = _TIMESTAMP_COLUMNS.get(target)
    if timestamp_column:
        values[timestamp_column] = now

    stmt = (
        update(Booking)
        .where(
            Booking.booking_id == booking_id,
            Booking.deleted_at.is_(None),
            Booking.status.in_(allowed_sources(target)),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1


async def _transition(session: AsyncSession, booking: Booking, target: BookingStatus) -> Booking:
    if not can_transition(booking.status, target):
        raise InvalidTransition(f"Cannot move booking from {booking.status.value} to {target.value}")

    booking_id = booking.booking_id
    if not await apply_transition(session, booking_id, target):
        metrics.record_booking("conflict")
        logger.info(
            "booking_transition_conflict",
            extra={"extra": {"booking_id": booking_id, "target": target.value}},
        )
        raise ConflictError(CONCURRENT_UPDATE_DETAIL)

    metrics.record_booking(target.value)
    logger.info("booking_status_changed", extra={"extra": {"booking_id": booking_id, "status": target.value}})
    return await session.get(Booking, booking_id, populate_existing=True)


async def confirm_booking(session: AsyncSession, booking_id: str, requester_id: str) -> Booking:
    booking = await get_booking(session, booking_id)
    if not await center_service.is_center_member(session, booking.center_id, requester_id):
        raise PermissionDenied("Only center staff can confirm bookings")
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransition("Only pending bookings can be confirmed")
    return await _transition(session, booking, BookingStatus.CONFIRMED)


async def cancel_booking(session: AsyncSession, booking_id: str, requester_id: str) -> Booking:
    booking = await get_booking(session, booking_id)
    if booking.client_id != requester_id and not await center_service.is_center_member(
        session, booking.center_id, requester_id
    ):
        raise PermissionDenied("Not allowed to cancel this booking")
    if booking.status.is_terminal:
        raise InvalidTransition(f"Cannot cancel a booking that is {booking.status.value}")
    return await _transition(session, booking, BookingStatus.CANCELLED)


async def transition_booking(session: AsyncSession, booking_id: str, target: BookingStatus) -> Booking:
    booking = await get_booking(session, booking_id)
    return await _transition(session, booking, target)
