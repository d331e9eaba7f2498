import asyncio
from datetime import time

from divebook.domain.bookings import availability
from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.centers.db_models import BlockedDate
from divebook.settings import settings


def _block(async_session_maker, center_id, day) -> None:
    async def _insert() -> None:
        async with async_session_maker() as session:
            session.add(BlockedDate(center_id=center_id, blocked_date=day, reason="Boat maintenance"))
            await session.commit()

    asyncio.run(_insert())


def test_day_slots_cover_configured_hours(client, marketplace, booking_day):
    response = client.get(
        "/bookings/availability",
        params={"service_id": marketplace.service_id, "date": booking_day.isoformat()},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is True
    slots = [slot["time_slot"] for slot in body["slots"]]
    assert slots[0] == "08:00"
    assert slots[-1] == "17:00"
    assert len(slots) == 10
    assert all(slot["available"] for slot in body["slots"])


def test_occupied_slot_is_unavailable_and_cancelled_frees_it(client, marketplace, seed_booking, booking_day):
    seed_booking(BookingStatus.CONFIRMED, time_slot=time(hour=9), booking_date=booking_day)
    seed_booking(BookingStatus.CANCELLED, time_slot=time(hour=10), booking_date=booking_day)

    response = client.get(
        "/bookings/availability",
        params={"service_id": marketplace.service_id, "date": booking_day.isoformat()},
    )
    states = {slot["time_slot"]: slot["available"] for slot in response.json()["slots"]}
    assert states["09:00"] is False
    assert states["10:00"] is True
    assert states["08:00"] is True


def test_blocked_date_is_wholly_unavailable(client, async_session_maker, marketplace, booking_day):
    _block(async_session_maker, marketplace.center_id, booking_day)

    response = client.get(
        "/bookings/availability",
        params={"service_id": marketplace.service_id, "date": booking_day.isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["available"] is False
    assert response.json()["reason"] == "date_blocked"
    assert response.json()["slots"] == []


def test_is_available_checks_blocked_dates_and_bookings(async_session_maker, marketplace, seed_booking, booking_day):
    seed_booking(BookingStatus.PENDING, time_slot=time(hour=11), booking_date=booking_day)

    async def _check() -> tuple[bool, bool, bool]:
        async with async_session_maker() as session:
            taken = await availability.is_available(session, marketplace.service_id, booking_day, time(hour=11))
            free = await availability.is_available(session, marketplace.service_id, booking_day, time(hour=12))
            session.add(BlockedDate(center_id=marketplace.center_id, blocked_date=booking_day))
            await session.commit()
            blocked = await availability.is_available(session, marketplace.service_id, booking_day, time(hour=12))
            return taken, free, blocked

    taken, free, blocked = asyncio.run(_check())
    assert taken is False
    assert free is True
    assert blocked is False


def test_custom_slot_range(client, marketplace, booking_day):
    settings.slot_start_hour = 9
    settings.slot_end_hour = 11

    response = client.get(
        "/bookings/availability",
        params={"service_id": marketplace.service_id, "date": booking_day.isoformat()},
    )
    assert [slot["time_slot"] for slot in response.json()["slots"]] == ["09:00", "10:00", "11:00"]


def test_availability_validates_input(client, marketplace):
    bad_date = client.get(
        "/bookings/availability", params={"service_id": marketplace.service_id, "date": "07/01/2030"}
    )
    assert bad_date.status_code == 400

    unknown = client.get("/bookings/availability", params={"service_id": "missing", "date": "2030-01-01"})
    assert unknown.status_code == 404


def test_pending_and_completed_bookings_hold_their_slots(client, marketplace, seed_booking, booking_day):
    seed_booking(BookingStatus.PENDING, time_slot=time(hour=11), booking_date=booking_day)
    seed_booking(BookingStatus.COMPLETED, time_slot=time(hour=12), booking_date=booking_day)

    response = client.get(
        "/bookings/availability",
        params={"service_id": marketplace.service_id, "date": booking_day.isoformat()},
    )
    states = {slot["time_slot"]: slot["available"] for slot in response.json()["slots"]}
    assert states["11:00"] is False
    assert states["12:00"] is False
