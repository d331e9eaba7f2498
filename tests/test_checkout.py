import asyncio
from decimal import Decimal

import pytest

from divebook.domain.bookings.db_models import Booking
from divebook.domain.bookings.statuses import BookingStatus


def _fetch_status(async_session_maker, booking_id: str) -> BookingStatus:
    async def _get() -> BookingStatus:
        async with async_session_maker() as session:
            booking = await session.get(Booking, booking_id)
            return booking.status

    return asyncio.run(_get())


def test_checkout_direct_charge_without_connected_account(
    client, async_session_maker, marketplace, auth_headers, seed_booking, fake_stripe
):
    booking_id = seed_booking(BookingStatus.PENDING)

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.client_id))

    assert response.status_code == 200, response.text
    assert response.json() == {"booking_id": booking_id, "checkout_url": "https://checkout.stripe.test/cs_test_1"}

    assert len(fake_stripe["checkout"]) == 1
    call = fake_stripe["checkout"][0]
    assert call["mode"] == "payment"
    assert call["line_items"][0]["price_data"]["unit_amount"] == 20000
    assert call["line_items"][0]["price_data"]["currency"] == "eur"
    assert call["metadata"] == {"booking_id": booking_id}
    assert call["payment_intent_data"] == {"metadata": {"booking_id": booking_id}}
    assert call["success_url"] == f"https://divebook.test/bookings/{booking_id}?status=success"
    assert call["cancel_url"] == f"https://divebook.test/bookings/{booking_id}?status=cancelled"

    # checkout never moves the booking forward on its own
    assert _fetch_status(async_session_maker, booking_id) == BookingStatus.PENDING


def test_checkout_destination_charge_with_onboarded_account(
    client, marketplace, auth_headers, seed_booking, connect_center, fake_stripe
):
    connect_center("acct_reef", onboarding_complete=True)
    booking_id = seed_booking(BookingStatus.PENDING, participants=3, unit_price=Decimal("45.50"))

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.client_id))

    assert response.status_code == 200
    intent_data = fake_stripe["checkout"][0]["payment_intent_data"]
    assert intent_data["transfer_data"] == {"destination": "acct_reef"}
    # 136.50 total at 20% commission
    assert intent_data["application_fee_amount"] == 2730
    assert intent_data["metadata"] == {"booking_id": booking_id}


def test_checkout_ignores_incomplete_onboarding(client, marketplace, auth_headers, seed_booking, connect_center, fake_stripe):
    connect_center("acct_pending", onboarding_complete=False)
    booking_id = seed_booking(BookingStatus.PENDING)

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.client_id))

    assert response.status_code == 200
    assert "transfer_data" not in fake_stripe["checkout"][0]["payment_intent_data"]


@pytest.mark.parametrize(
    "status",
    [BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED],
)
def test_checkout_requires_pending_booking(client, marketplace, auth_headers, seed_booking, fake_stripe, status):
    booking_id = seed_booking(status)

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.client_id))

    assert response.status_code == 400
    assert fake_stripe["checkout"] == []


def test_checkout_only_for_booking_client(client, marketplace, auth_headers, seed_booking, fake_stripe):
    booking_id = seed_booking(BookingStatus.PENDING)

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.other_client_id))

    assert response.status_code == 403
    assert fake_stripe["checkout"] == []


def test_checkout_gateway_failure_is_opaque(client, marketplace, auth_headers, seed_booking, failing_stripe):
    booking_id = seed_booking(BookingStatus.PENDING)

    response = client.post(f"/bookings/{booking_id}/checkout", headers=auth_headers(marketplace.client_id))

    assert response.status_code == 502
    body = response.json()
    assert body["detail"] == "Payment provider unavailable"
    assert "api.stripe.com" not in response.text
