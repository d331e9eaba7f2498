from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.bookings.db_models import Booking
from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.payments.commission import quantize_money
from divebook.domain.payments.db_models import TRANSACTION_SUCCEEDED, Transaction

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class RevenueSummary:
    total_revenue: Decimal
    total_commission: Decimal
    net_revenue: Decimal
    pending_revenue: Decimal
    completed_revenue: Decimal
    transaction_count: int


def _money(value: object) -> Decimal:
    if value is None:
        return ZERO
    return quantize_money(Decimal(str(value)))


async def list_commissions(session: AsyncSession, center_id: str, *, limit: int, offset: int) -> list[Booking]:
    stmt = (
        select(Booking)
        .where(Booking.center_id == center_id, Booking.deleted_at.is_(None))
        .order_by(Booking.created_at.desc(), Booking.booking_id)
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_payments(session: AsyncSession, center_id: str, *, limit: int, offset: int) -> list[Transaction]:
    stmt = (
        select(Transaction)
        .join(Booking, Booking.booking_id == Transaction.booking_id)
        .where(Booking.center_id == center_id, Transaction.deleted_at.is_(None))
        .order_by(Transaction.created_at.desc(), Transaction.transaction_id)
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def available_balance(session: AsyncSession, center_id: str) -> Decimal:
    """Net amount owed to a center: completed bookings minus their commission."""
    stmt = select(func.sum(Booking.total_price - Booking.commission_amount)).where(
        Booking.center_id == center_id,
        Booking.status == BookingStatus.COMPLETED,
        Booking.deleted_at.is_(None),
    )
    return _money(await session.scalar(stmt))


async def revenue_summary(session: AsyncSession, center_id: str) -> RevenueSummary:
    stmt = (
        select(
            Booking.status,
            func.sum(Booking.total_price),
            func.sum(Booking.commission_amount),
        )
        .where(
            Booking.center_id == center_id,
            Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.COMPLETED]),
            Booking.deleted_at.is_(None),
        )
        .group_by(Booking.status)
    )
    totals: dict[BookingStatus, tuple[Decimal, Decimal]] = {}
    for status, gross, commission in (await session.execute(stmt)).all():
        totals[BookingStatus(status)] = (_money(gross), _money(commission))

    confirmed_gross, confirmed_commission = totals.get(BookingStatus.CONFIRMED, (ZERO, ZERO))
    completed_gross, completed_commission = totals.get(BookingStatus.COMPLETED, (ZERO, ZERO))
    total_revenue = confirmed_gross + completed_gross
    total_commission = confirmed_commission + completed_commission

    count_stmt = (
        select(func.count(Transaction.transaction_id))
        .join(Booking, Booking.booking_id == Transaction.booking_id)
        .where(
            Booking.center_id == center_id,
            Transaction.status == TRANSACTION_SUCCEEDED,
            Transaction.deleted_at.is_(None),
        )
    )
    transaction_count = int(await session.scalar(count_stmt) or 0)

    return RevenueSummary(
        total_revenue=total_revenue,
        total_commission=total_commission,
        net_revenue=total_revenue - total_commission,
        pending_revenue=confirmed_gross - confirmed_commission,
        completed_revenue=completed_gross - completed_commission,
        transaction_count=transaction_count,
    )
