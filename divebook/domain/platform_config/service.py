import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.errors import ConfigurationError, NotFoundError, ValidationFailed
from divebook.domain.payments.commission import parse_rate
from divebook.domain.platform_config.db_models import COMMISSION_RATE_KEY, PlatformConfig
from divebook.settings import settings

logger = logging.getLogger(__name__)

SECRET_MASK = "****"


def mask_secret(value: str | None) -> str:
    if not value:
        return SECRET_MASK
    return f"{SECRET_MASK}{value[-4:]}" if len(value) > 4 else SECRET_MASK


def display_value(entry: PlatformConfig) -> str:
    return mask_secret(entry.value) if entry.is_secret else entry.value


async def get_commission_rate(session: AsyncSession) -> Decimal:
    """Snapshot the platform commission rate for one booking creation.

    Falls back to the configured default when no row exists. A stored value
    that cannot be parsed is an operator error and is raised, not defaulted.
    """
    entry = await session.get(PlatformConfig, COMMISSION_RATE_KEY)
    if entry is None or not (entry.value or "").strip():
        return settings.default_commission_rate
    try:
        return parse_rate(entry.value)
    except ValueError as exc:
        logger.error(
            "commission_rate_invalid",
            extra={"extra": {"key": COMMISSION_RATE_KEY, "value": entry.value}},
        )
        raise ConfigurationError("Commission rate misconfigured") from exc


async def set_commission_rate(session: AsyncSession, rate: Decimal, updated_by: str | None) -> PlatformConfig:
    if rate < 0 or rate > 100:
        raise ValidationFailed("Commission rate must be between 0 and 100")
    entry = await session.get(PlatformConfig, COMMISSION_RATE_KEY)
    if entry is None:
        entry = PlatformConfig(
            key=COMMISSION_RATE_KEY,
            category="commissions",
            is_secret=False,
            description="Platform commission percentage applied to new bookings",
        )
        session.add(entry)
    entry.value = str(rate)
    entry.updated_by = updated_by
    await session.commit()
    await session.refresh(entry)
    logger.info(
        "commission_rate_updated",
        extra={"extra": {"rate": str(rate), "updated_by": updated_by}},
    )
    return entry


async def list_settings(session: AsyncSession) -> list[PlatformConfig]:
    result = await session.execute(select(PlatformConfig).order_by(PlatformConfig.category, PlatformConfig.key))
    return list(result.scalars().all())


async def update_setting(session: AsyncSession, key: str, value: str, updated_by: str | None) -> PlatformConfig:
    entry = await session.get(PlatformConfig, key)
    if entry is None:
        raise NotFoundError("Setting not found")
    if key == COMMISSION_RATE_KEY:
        try:
            parse_rate(value)
        except ValueError as exc:
            raise ValidationFailed("Commission rate must be a number between 0 and 100") from exc
    entry.value = value
    entry.updated_by = updated_by
    await session.commit()
    await session.refresh(entry)
    logger.info("platform_setting_updated", extra={"extra": {"key": key, "updated_by": updated_by}})
    return entry
