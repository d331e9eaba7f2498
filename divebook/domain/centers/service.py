from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.centers.db_models import CENTER_ROLE_OWNER, BlockedDate, Center, CenterMember, Service
from divebook.domain.errors import NotFoundError


async def get_center(session: AsyncSession, center_id: str) -> Center:
    center = await session.get(Center, center_id)
    if center is None or center.deleted_at is not None:
        raise NotFoundError("Center not found")
    return center


async def get_service(session: AsyncSession, service_id: str) -> Service:
    service = await session.get(Service, service_id)
    if service is None or service.deleted_at is not None:
        raise NotFoundError("Service not found")
    return service


async def get_membership(session: AsyncSession, center_id: str, profile_id: str) -> CenterMember | None:
    return await session.get(CenterMember, {"profile_id": profile_id, "center_id": center_id})


async def is_center_member(session: AsyncSession, center_id: str, profile_id: str) -> bool:
    return await get_membership(session, center_id, profile_id) is not None


async def is_center_owner(session: AsyncSession, center_id: str, profile_id: str) -> bool:
    center = await session.get(Center, center_id)
    if center is not None and center.owner_id == profile_id:
        return True
    membership = await get_membership(session, center_id, profile_id)
    return membership is not None and membership.role_in_center == CENTER_ROLE_OWNER


async def list_owned_centers(session: AsyncSession, profile_id: str) -> list[Center]:
    owned_via_membership = select(CenterMember.center_id).where(
        CenterMember.profile_id == profile_id,
        CenterMember.role_in_center == CENTER_ROLE_OWNER,
    )
    stmt = (
        select(Center)
        .where(
            Center.deleted_at.is_(None),
            (Center.owner_id == profile_id) | Center.center_id.in_(owned_via_membership),
        )
        .order_by(Center.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def is_date_blocked(session: AsyncSession, center_id: str, target_date: date) -> bool:
    stmt = select(BlockedDate.id).where(
        BlockedDate.center_id == center_id,
        BlockedDate.blocked_date == target_date,
    )
    return (await session.scalar(stmt.limit(1))) is not None
