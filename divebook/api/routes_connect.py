from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.api.identity import Identity, get_identity, require_center_owner
from divebook.domain.centers import connect
from divebook.domain.centers import schemas as center_schemas
from divebook.domain.centers import service as center_service
from divebook.domain.centers.db_models import Center
from divebook.infra import stripe_client as stripe_infra
from divebook.infra.db import get_db_session
from divebook.settings import settings

router = APIRouter()


def _payout_config(center: Center) -> center_schemas.PayoutConfig:
    return center_schemas.PayoutConfig(
        center_id=center.center_id,
        name=center.name,
        currency=center.currency,
        stripe_account_id=center.stripe_account_id,
        onboarding_complete=bool(center.stripe_onboarding_complete),
    )


@router.post("/stripe/connect", response_model=center_schemas.ConnectResponse)
async def connect_account(
    payload: center_schemas.ConnectRequest,
    http_request: Request,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> center_schemas.ConnectResponse:
    await require_center_owner(session, payload.center_id, identity)
    stripe_client = stripe_infra.resolve_client(http_request.app.state)
    account_id, onboarding_url = await connect.start_onboarding(session, stripe_client, payload.center_id)
    return center_schemas.ConnectResponse(
        center_id=payload.center_id,
        account_id=account_id,
        onboarding_url=onboarding_url,
    )


@router.get("/stripe/config", response_model=center_schemas.PayoutConfigListResponse)
async def get_payout_config(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> center_schemas.PayoutConfigListResponse:
    centers = await center_service.list_owned_centers(session, identity.profile_id)
    return center_schemas.PayoutConfigListResponse(
        centers=[_payout_config(center) for center in centers],
        supported_currencies=settings.supported_currencies,
    )


@router.patch("/stripe/config", response_model=center_schemas.PayoutConfig)
async def update_payout_config(
    payload: center_schemas.PayoutConfigUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> center_schemas.PayoutConfig:
    await require_center_owner(session, payload.center_id, identity)
    center = await connect.update_center_currency(session, payload.center_id, payload.currency)
    return _payout_config(center)
