"""Reconciliation of verified Stripe events against bookings and transactions.

Every handler is safe to run more than once for the same event and in any
order relative to the other handled event types. Handlers return a short
result label; anything they do not raise is acknowledged to Stripe, while
store failures propagate so the delivery is retried.
"""

import logging
import uuid
from typing import Any, Awaitable, Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.bookings import service as booking_service
from divebook.domain.bookings.db_models import Booking
from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.centers.db_models import Center
from divebook.domain.payments.commission import from_minor_units, split_settlement
from divebook.domain.payments.db_models import TRANSACTION_REFUNDED, TRANSACTION_SUCCEEDED, Transaction
from divebook.infra.db import classify_integrity_error
from divebook.infra.stripe_client import expandable_id, safe_get

logger = logging.getLogger(__name__)

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_CHARGE_REFUNDED = "charge.refunded"
EVENT_ACCOUNT_UPDATED = "account.updated"

RESULT_RECORDED = "recorded"
RESULT_DUPLICATE = "duplicate"
RESULT_CONFIRMED = "confirmed"
RESULT_REFUNDED = "refunded"
RESULT_UPDATED = "updated"
RESULT_NOOP = "noop"
RESULT_IGNORED = "ignored"

Handler = Callable[[AsyncSession, Any], Awaitable[str]]


def _booking_id_from_metadata(payload_object: Any) -> str | None:
    metadata = safe_get(payload_object, "metadata")
    raw = safe_get(metadata, "booking_id")
    if not raw:
        return None
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError:
        return None


async def _find_transaction_id(session: AsyncSession, payment_intent_id: str) -> str | None:
    stmt = select(Transaction.transaction_id).where(
        Transaction.stripe_payment_intent_id == payment_intent_id,
        Transaction.deleted_at.is_(None),
    )
    return await session.scalar(stmt.limit(1))


async def _load_booking(session: AsyncSession, booking_id: str) -> Booking | None:
    booking = await session.get(Booking, booking_id)
    if booking is None or booking.deleted_at is not None:
        return None
    return booking


async def handle_checkout_completed(session: AsyncSession, payload_object: Any) -> str:
    booking_id = _booking_id_from_metadata(payload_object)
    if booking_id is None:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "missing_booking_metadata", "event_type": EVENT_CHECKOUT_COMPLETED}},
        )
        return RESULT_IGNORED

    payment_intent_id = expandable_id(safe_get(payload_object, "payment_intent"))
    if not payment_intent_id:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "missing_payment_intent", "booking_id": booking_id}},
        )
        return RESULT_IGNORED

    if await _find_transaction_id(session, payment_intent_id) is not None:
        logger.info(
            "stripe_transaction_duplicate",
            extra={"extra": {"booking_id": booking_id, "payment_intent_id": payment_intent_id}},
        )
        return RESULT_DUPLICATE

    booking = await _load_booking(session, booking_id)
    if booking is None:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "booking_not_found", "booking_id": booking_id}},
        )
        return RESULT_IGNORED

    amount_total = safe_get(payload_object, "amount_total")
    if isinstance(amount_total, bool) or not isinstance(amount_total, int) or amount_total < 0:
        logger.warning(
            "stripe_webhook_ignored",
            extra={
                "extra": {
                    "reason": "missing_amount_total" if amount_total is None else "invalid_amount_total",
                    "booking_id": booking_id,
                    "payment_intent_id": payment_intent_id,
                }
            },
        )
        return RESULT_IGNORED

    gross = from_minor_units(amount_total)
    platform_fee, vendor_amount = split_settlement(gross, booking.commission_rate)
    if gross == booking.total_price and platform_fee != booking.commission_amount:
        logger.warning(
            "stripe_commission_mismatch",
            extra={
                "extra": {
                    "booking_id": booking_id,
                    "booked_commission": str(booking.commission_amount),
                    "settled_commission": str(platform_fee),
                }
            },
        )

    currency = str(safe_get(payload_object, "currency") or booking.currency).upper()
    transaction = Transaction(
        booking_id=booking.booking_id,
        stripe_payment_intent_id=payment_intent_id,
        amount=gross,
        platform_fee=platform_fee,
        vendor_amount=vendor_amount,
        currency=currency,
        status=TRANSACTION_SUCCEEDED,
    )
    session.add(transaction)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        kind = classify_integrity_error(exc)
        if kind is None:
            logger.error(
                "stripe_transaction_insert_failed",
                extra={"extra": {"booking_id": booking_id, "payment_intent_id": payment_intent_id}},
            )
            raise
        logger.info(
            "stripe_transaction_insert_skipped",
            extra={"extra": {"booking_id": booking_id, "payment_intent_id": payment_intent_id, "constraint": kind}},
        )
        return RESULT_DUPLICATE if kind == "unique" else RESULT_NOOP

    logger.info(
        "stripe_transaction_recorded",
        extra={
            "extra": {
                "booking_id": booking_id,
                "transaction_id": transaction.transaction_id,
                "amount": str(gross),
                "platform_fee": str(platform_fee),
            }
        },
    )
    return RESULT_RECORDED


async def handle_payment_succeeded(session: AsyncSession, payload_object: Any) -> str:
    booking_id = _booking_id_from_metadata(payload_object)
    if booking_id is None:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "missing_booking_metadata", "event_type": EVENT_PAYMENT_SUCCEEDED}},
        )
        return RESULT_IGNORED

    if not await booking_service.apply_transition(session, booking_id, BookingStatus.CONFIRMED):
        logger.info(
            "stripe_booking_confirm_noop",
            extra={"extra": {"booking_id": booking_id, "payment_intent_id": safe_get(payload_object, "id")}},
        )
        return RESULT_NOOP

    logger.info("stripe_booking_confirmed", extra={"extra": {"booking_id": booking_id}})
    return RESULT_CONFIRMED


async def handle_charge_refunded(session: AsyncSession, payload_object: Any) -> str:
    payment_intent_id = expandable_id(safe_get(payload_object, "payment_intent"))
    if not payment_intent_id:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "missing_payment_intent", "event_type": EVENT_CHARGE_REFUNDED}},
        )
        return RESULT_IGNORED

    stmt = (
        update(Transaction)
        .where(
            Transaction.stripe_payment_intent_id == payment_intent_id,
            Transaction.deleted_at.is_(None),
        )
        .values(status=TRANSACTION_REFUNDED)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    if result.rowcount == 0:
        logger.info(
            "stripe_refund_unmatched",
            extra={"extra": {"payment_intent_id": payment_intent_id}},
        )
        return RESULT_NOOP

    logger.info("stripe_transaction_refunded", extra={"extra": {"payment_intent_id": payment_intent_id}})
    return RESULT_REFUNDED


async def handle_account_updated(session: AsyncSession, payload_object: Any) -> str:
    account_id = safe_get(payload_object, "id")
    if not account_id:
        return RESULT_IGNORED

    charges_enabled = bool(safe_get(payload_object, "charges_enabled", False))
    stmt = (
        update(Center)
        .where(Center.stripe_account_id == str(account_id))
        .values(stripe_onboarding_complete=charges_enabled)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    if result.rowcount == 0:
        logger.info("stripe_account_unmatched", extra={"extra": {"account_id": account_id}})
        return RESULT_NOOP

    logger.info(
        "stripe_account_synced",
        extra={"extra": {"account_id": account_id, "charges_enabled": charges_enabled}},
    )
    return RESULT_UPDATED


EVENT_HANDLERS: dict[str, Handler] = {
    EVENT_CHECKOUT_COMPLETED: handle_checkout_completed,
    EVENT_PAYMENT_SUCCEEDED: handle_payment_succeeded,
    EVENT_CHARGE_REFUNDED: handle_charge_refunded,
    EVENT_ACCOUNT_UPDATED: handle_account_updated,
}


async def handle_event(session: AsyncSession, event: Any) -> str:
    event_type = str(safe_get(event, "type") or "")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(
            "stripe_webhook_ignored",
            extra={"extra": {"reason": "unsupported_event", "event_type": event_type}},
        )
        return RESULT_IGNORED

    data = safe_get(event, "data", {}) or {}
    payload_object = safe_get(data, "object", {}) or {}
    return await handler(session, payload_object)
