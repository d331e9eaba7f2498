from dataclasses import dataclass, field
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.bookings.db_models import Booking
from divebook.domain.bookings.statuses import OCCUPYING_STATUSES
from divebook.domain.centers import service as center_service
from divebook.settings import settings

REASON_DATE_BLOCKED = "date_blocked"


@dataclass(frozen=True)
class SlotState:
    time_slot: time
    available: bool


@dataclass
class DayAvailability:
    available: bool
    reason: str | None = None
    slots: list[SlotState] = field(default_factory=list)


def candidate_slots() -> list[time]:
    start, end = settings.slot_start_hour, settings.slot_end_hour
    return [time(hour=hour) for hour in range(start, end + 1)]


def _occupying(service_id: str, target_date: date):
    return select(Booking.time_slot).where(
        Booking.service_id == service_id,
        Booking.booking_date == target_date,
        Booking.status.in_(OCCUPYING_STATUSES),
        Booking.deleted_at.is_(None),
    )


async def is_slot_taken(session: AsyncSession, service_id: str, target_date: date, slot: time) -> bool:
    stmt = _occupying(service_id, target_date).where(Booking.time_slot == slot).limit(1)
    return (await session.scalar(stmt)) is not None


async def is_available(session: AsyncSession, service_id: str, target_date: date, slot: time) -> bool:
    service = await center_service.get_service(session, service_id)
    if await center_service.is_date_blocked(session, service.center_id, target_date):
        return False
    return not await is_slot_taken(session, service_id, target_date, slot)


async def list_day_slots(session: AsyncSession, service_id: str, target_date: date) -> DayAvailability:
    service = await center_service.get_service(session, service_id)
    if await center_service.is_date_blocked(session, service.center_id, target_date):
        return DayAvailability(available=False, reason=REASON_DATE_BLOCKED)

    result = await session.execute(_occupying(service_id, target_date))
    taken = set(result.scalars().all())
    slots = [SlotState(time_slot=slot, available=slot not in taken) for slot in candidate_slots()]
    return DayAvailability(available=True, slots=slots)
