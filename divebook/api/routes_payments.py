import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.api.identity import Identity, get_identity, require_center_member
from divebook.domain.centers import service as center_service
from divebook.domain.payments import schemas as payment_schemas
from divebook.domain.payments import service as finance_service
from divebook.domain.payments import webhooks
from divebook.domain.payouts import service as payout_service
from divebook.infra import stripe_client as stripe_infra
from divebook.infra.db import get_db_session
from divebook.infra.metrics import metrics
from divebook.settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/stripe/webhook")
async def stripe_webhook(http_request: Request, session: AsyncSession = Depends(get_db_session)) -> dict[str, bool]:
    payload = await http_request.body()
    signature = http_request.headers.get("Stripe-Signature")

    stripe_client = stripe_infra.resolve_client(http_request.app.state)
    if not stripe_client.webhook_secret:
        metrics.record_webhook("unverified", "rejected")
        logger.error("stripe_webhook_secret_missing")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stripe webhook disabled")

    try:
        event = stripe_client.verify_webhook(payload=payload, signature=signature)
    except Exception as exc:  # noqa: BLE001
        metrics.record_webhook("unverified", "rejected")
        logger.warning("stripe_webhook_invalid", extra={"extra": {"reason": type(exc).__name__}})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Stripe webhook") from exc

    event_type = str(stripe_infra.safe_get(event, "type") or "unknown")
    try:
        result = await webhooks.handle_event(session, event)
    except Exception:
        metrics.record_webhook(event_type, "error")
        logger.exception(
            "stripe_webhook_processing_failed",
            extra={"extra": {"event_id": stripe_infra.safe_get(event, "id"), "event_type": event_type}},
        )
        raise

    metrics.record_webhook(event_type, result)
    logger.info(
        "stripe_webhook_processed",
        extra={"extra": {"event_id": stripe_infra.safe_get(event, "id"), "event_type": event_type, "result": result}},
    )
    return {"received": True}


@router.get("/commissions", response_model=payment_schemas.CommissionListResponse)
async def list_commissions(
    center_id: str = Query(..., min_length=1, max_length=36),
    limit: int = Query(payment_schemas.DEFAULT_PAGE_SIZE, ge=1, le=payment_schemas.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> payment_schemas.CommissionListResponse:
    await require_center_member(session, center_id, identity)
    bookings = await finance_service.list_commissions(session, center_id, limit=limit, offset=offset)
    return payment_schemas.CommissionListResponse(
        center_id=center_id,
        commissions=[payment_schemas.CommissionEntry.model_validate(booking) for booking in bookings],
    )


@router.get("/payments", response_model=payment_schemas.PaymentListResponse)
async def list_payments(
    center_id: str = Query(..., min_length=1, max_length=36),
    limit: int = Query(payment_schemas.DEFAULT_PAGE_SIZE, ge=1, le=payment_schemas.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> payment_schemas.PaymentListResponse:
    await require_center_member(session, center_id, identity)
    transactions = await finance_service.list_payments(session, center_id, limit=limit, offset=offset)
    return payment_schemas.PaymentListResponse(
        center_id=center_id,
        payments=[payment_schemas.PaymentEntry.model_validate(transaction) for transaction in transactions],
    )


@router.get("/revenue", response_model=payment_schemas.RevenueResponse)
async def get_revenue(
    center_id: str = Query(..., min_length=1, max_length=36),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> payment_schemas.RevenueResponse:
    await require_center_member(session, center_id, identity)
    center = await center_service.get_center(session, center_id)
    summary = await finance_service.revenue_summary(session, center_id)
    return payment_schemas.RevenueResponse(
        center_id=center_id,
        currency=center.currency or settings.default_currency,
        total_revenue=summary.total_revenue,
        total_commission=summary.total_commission,
        net_revenue=summary.net_revenue,
        pending_revenue=summary.pending_revenue,
        completed_revenue=summary.completed_revenue,
        transaction_count=summary.transaction_count,
    )


@router.post("/payouts/request", response_model=payment_schemas.PayoutResponse)
async def request_payout(
    payload: payment_schemas.PayoutRequest,
    http_request: Request,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> payment_schemas.PayoutResponse:
    stripe_client = stripe_infra.resolve_client(http_request.app.state)
    transfer_id, currency = await payout_service.request_payout(
        session,
        stripe_client,
        center_id=payload.center_id,
        amount=payload.amount,
        requester_id=identity.profile_id,
        currency=payload.currency,
    )
    return payment_schemas.PayoutResponse(
        center_id=payload.center_id,
        transfer_id=transfer_id,
        amount=payload.amount,
        currency=currency,
    )
