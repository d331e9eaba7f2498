import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.api.identity import Identity, require_admin
from divebook.domain.bookings import schemas as booking_schemas
from divebook.domain.bookings import service as booking_service
from divebook.domain.platform_config import schemas as config_schemas
from divebook.domain.platform_config import service as config_service
from divebook.domain.platform_config.db_models import PlatformConfig
from divebook.infra.db import get_db_session

router = APIRouter(prefix="/admin")
logger = logging.getLogger(__name__)


def _setting_response(entry: PlatformConfig) -> config_schemas.SettingResponse:
    return config_schemas.SettingResponse(
        key=entry.key,
        value=config_service.display_value(entry),
        category=entry.category,
        is_secret=entry.is_secret,
        description=entry.description,
        updated_at=entry.updated_at,
        updated_by=entry.updated_by,
    )


@router.get("/settings", response_model=list[config_schemas.SettingResponse])
async def list_settings(
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> list[config_schemas.SettingResponse]:
    del identity
    entries = await config_service.list_settings(session)
    return [_setting_response(entry) for entry in entries]


@router.put("/settings/{key}", response_model=config_schemas.SettingResponse)
async def update_setting(
    key: str,
    payload: config_schemas.SettingUpdateRequest,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> config_schemas.SettingResponse:
    entry = await config_service.update_setting(session, key, payload.value, identity.profile_id)
    return _setting_response(entry)


@router.get("/commissions/config", response_model=config_schemas.CommissionConfigResponse)
async def get_commission_config(
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> config_schemas.CommissionConfigResponse:
    del identity
    rate = await config_service.get_commission_rate(session)
    return config_schemas.CommissionConfigResponse(commission_rate=rate)


@router.put("/commissions/config", response_model=config_schemas.CommissionConfigResponse)
async def update_commission_config(
    payload: config_schemas.CommissionConfigUpdateRequest,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> config_schemas.CommissionConfigResponse:
    entry = await config_service.set_commission_rate(session, payload.commission_rate, identity.profile_id)
    return config_schemas.CommissionConfigResponse(commission_rate=entry.value)


@router.patch("/bookings/{booking_id}/status", response_model=booking_schemas.BookingResponse)
async def update_booking_status(
    booking_id: str,
    payload: booking_schemas.BookingStatusUpdateRequest,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> booking_schemas.BookingResponse:
    booking = await booking_service.transition_booking(session, booking_id, payload.status)
    logger.info(
        "admin_booking_status_changed",
        extra={"extra": {"booking_id": booking_id, "status": payload.status.value, "admin_id": identity.profile_id}},
    )
    return booking_schemas.BookingResponse.model_validate(booking)
