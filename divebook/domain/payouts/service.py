import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.centers import service as center_service
from divebook.domain.errors import PaymentGatewayError, PermissionDenied, ValidationFailed
from divebook.domain.payments import service as finance_service
from divebook.domain.payments.commission import MoneyConversionError, to_minor_units
from divebook.infra.metrics import metrics
from divebook.infra.stripe_client import StripeClient, safe_get
from divebook.settings import settings

logger = logging.getLogger(__name__)


async def request_payout(
    session: AsyncSession,
    stripe_client: StripeClient,
    *,
    center_id: str,
    amount: Decimal,
    requester_id: str,
    currency: str | None = None,
) -> tuple[str, str]:
    """Transfer part of a center's available balance to its connected account.

    Returns ``(transfer_id, currency)``. The transfer call is made exactly once;
    a failure is surfaced to the caller instead of being retried, since a
    duplicated transfer is worse than a missed one.
    """
    center = await center_service.get_center(session, center_id)
    if not await center_service.is_center_owner(session, center.center_id, requester_id):
        raise PermissionDenied("Only the center owner can request payouts")
    if amount <= 0:
        raise ValidationFailed("Payout amount must be positive")
    if not center.stripe_account_id:
        raise ValidationFailed("Center has no connected payment account")
    if not center.stripe_onboarding_complete:
        raise ValidationFailed("Connected account onboarding is not complete")

    payout_currency = (currency or center.currency or settings.default_currency).upper()
    if payout_currency not in settings.supported_currencies:
        raise ValidationFailed(f"Unsupported currency: {payout_currency}")

    try:
        amount_cents = to_minor_units(amount)
    except MoneyConversionError as exc:
        raise ValidationFailed("Payout amount must be in whole cents") from exc

    balance = await finance_service.available_balance(session, center.center_id)
    if amount > balance:
        metrics.record_payout("insufficient_balance")
        raise ValidationFailed(f"Requested amount exceeds available balance of {balance}")

    try:
        transfer = await stripe_client.create_transfer(
            amount_cents=amount_cents,
            currency=payout_currency.lower(),
            destination_account=center.stripe_account_id,
            description=f"Payout to {center.name}",
            metadata={"center_id": center.center_id},
        )
    except Exception as exc:  # noqa: BLE001
        metrics.record_payout("failed")
        logger.error(
            "stripe_transfer_failed",
            extra={"extra": {"center_id": center.center_id, "reason": type(exc).__name__, "error": str(exc)}},
        )
        raise PaymentGatewayError("Payout could not be processed") from exc

    transfer_id = str(safe_get(transfer, "id") or "")
    metrics.record_payout("succeeded")
    logger.info(
        "payout_requested",
        extra={
            "extra": {
                "center_id": center.center_id,
                "transfer_id": transfer_id,
                "amount": str(amount),
                "currency": payout_currency,
            }
        },
    )
    return transfer_id, payout_currency
