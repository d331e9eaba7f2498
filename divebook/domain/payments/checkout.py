import logging

from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.bookings import service as booking_service
from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.centers import service as center_service
from divebook.domain.centers.db_models import Service
from divebook.domain.errors import InvalidTransition, PaymentGatewayError, PermissionDenied, ValidationFailed
from divebook.domain.payments.commission import MoneyConversionError, to_minor_units
from divebook.infra.stripe_client import StripeClient, safe_get
from divebook.settings import settings

logger = logging.getLogger(__name__)


def booking_return_urls(booking_id: str) -> tuple[str, str]:
    base = settings.frontend_base_url
    return (
        f"{base}/bookings/{booking_id}?status=success",
        f"{base}/bookings/{booking_id}?status=cancelled",
    )


async def initiate_checkout(
    session: AsyncSession,
    stripe_client: StripeClient,
    booking_id: str,
    requester_id: str,
) -> str:
    """Open a hosted checkout session for a pending booking and return its URL.

    The booking row is left untouched; it only changes once the payment
    provider reports the payment through the webhook.
    """
    booking = await booking_service.get_booking(session, booking_id)
    if booking.client_id != requester_id:
        raise PermissionDenied("Only the booking's client can pay for it")
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransition("Only pending bookings can be paid")

    try:
        amount_cents = to_minor_units(booking.total_price)
        fee_cents = to_minor_units(booking.commission_amount)
    except MoneyConversionError as exc:
        logger.warning(
            "checkout_amount_not_exact",
            extra={"extra": {"booking_id": booking.booking_id, "total_price": str(booking.total_price)}},
        )
        raise ValidationFailed("Booking amount cannot be charged in whole cents") from exc

    center = await center_service.get_center(session, booking.center_id)
    destination = center.stripe_account_id if center.has_connected_account else None
    success_url, cancel_url = booking_return_urls(booking.booking_id)
    service = await session.get(Service, booking.service_id) if booking.service_id else None
    service_name = service.name if service is not None else "Dive booking"

    try:
        checkout_session = await stripe_client.create_checkout_session(
            amount_cents=amount_cents,
            currency=booking.currency.lower(),
            success_url=success_url,
            cancel_url=cancel_url,
            product_name=f"{center.name} - {service_name}",
            metadata={"booking_id": booking.booking_id},
            destination_account=destination,
            application_fee_cents=fee_cents if destination else None,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "stripe_checkout_creation_failed",
            extra={"extra": {"booking_id": booking.booking_id, "reason": type(exc).__name__, "error": str(exc)}},
        )
        raise PaymentGatewayError("Payment provider unavailable") from exc

    checkout_url = safe_get(checkout_session, "url")
    if not checkout_url:
        logger.warning("stripe_checkout_missing_url", extra={"extra": {"booking_id": booking.booking_id}})
        raise PaymentGatewayError("Payment provider unavailable")

    logger.info(
        "stripe_checkout_created",
        extra={
            "extra": {
                "booking_id": booking.booking_id,
                "checkout_session_id": safe_get(checkout_session, "id"),
                "destination_charge": destination is not None,
            }
        },
    )
    return str(checkout_url)
