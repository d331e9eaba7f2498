import logging

from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.centers import service as center_service
from divebook.domain.centers.db_models import Center
from divebook.domain.errors import PaymentGatewayError, ValidationFailed
from divebook.infra.stripe_client import StripeClient, safe_get
from divebook.settings import settings

logger = logging.getLogger(__name__)


def onboarding_urls() -> tuple[str, str]:
    base = settings.frontend_base_url
    return (
        f"{base}/dashboard/payouts?refresh=true",
        f"{base}/dashboard/payouts?onboarding=complete",
    )


async def start_onboarding(
    session: AsyncSession,
    stripe_client: StripeClient,
    center_id: str,
) -> tuple[str, str]:
    """Ensure the center has a connected account and return ``(account_id, onboarding_url)``."""
    center = await center_service.get_center(session, center_id)

    account_id = center.stripe_account_id
    if not account_id:
        try:
            account = await stripe_client.create_connected_account(metadata={"center_id": center.center_id})
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "stripe_account_creation_failed",
                extra={"extra": {"center_id": center.center_id, "reason": type(exc).__name__, "error": str(exc)}},
            )
            raise PaymentGatewayError("Payment provider unavailable") from exc
        account_id = str(safe_get(account, "id"))
        center.stripe_account_id = account_id
        center.stripe_onboarding_complete = False
        await session.commit()
        logger.info(
            "stripe_account_created",
            extra={"extra": {"center_id": center.center_id, "account_id": account_id}},
        )

    refresh_url, return_url = onboarding_urls()
    try:
        link = await stripe_client.create_onboarding_link(
            account_id=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "stripe_onboarding_link_failed",
            extra={"extra": {"center_id": center.center_id, "reason": type(exc).__name__, "error": str(exc)}},
        )
        raise PaymentGatewayError("Payment provider unavailable") from exc

    return account_id, str(safe_get(link, "url"))


async def update_center_currency(session: AsyncSession, center_id: str, currency: str) -> Center:
    center = await center_service.get_center(session, center_id)
    normalized = currency.strip().upper()
    if normalized not in settings.supported_currencies:
        raise ValidationFailed(f"Unsupported currency: {normalized}")
    center.currency = normalized
    await session.commit()
    await session.refresh(center)
    logger.info(
        "center_currency_updated",
        extra={"extra": {"center_id": center.center_id, "currency": normalized}},
    )
    return center
