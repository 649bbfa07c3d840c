from typing import List, Optional

from sqlalchemy import and_, func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import db_operation
from app.core.exceptions import NotFoundError, ValidationError
from app.clubs.models.enums import ClubRole, MembershipStatus
from app.clubs.models.memberships import Membership


@db_operation
async def get_membership_by_id(session: AsyncSession, membership_id: int) -> Membership:
    """Get membership by ID"""
    if not membership_id or membership_id <= 0:
        raise ValidationError("Membership ID must be positive")

    result = await session.execute(
        select(Membership).where(Membership.id == membership_id)
    )
    membership = result.scalar_one_or_none()

    if not membership:
        raise NotFoundError("Membership", str(membership_id))

    return membership


@db_operation
async def get_membership_for_user(
    session: AsyncSession, user_id: int, club_id: int
) -> Optional[Membership]:
    """Membership of a user in a club, whatever its status"""
    result = await session.execute(
        select(Membership).where(
            and_(Membership.user_id == user_id, Membership.club_id == club_id)
        )
    )
    return result.scalar_one_or_none()


@db_operation
async def get_active_membership(
    session: AsyncSession, user_id: int, club_id: int
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            and_(
                Membership.user_id == user_id,
                Membership.club_id == club_id,
                Membership.status == MembershipStatus.ACTIVE,
            )
        )
    )
    return result.scalar_one_or_none()


@db_operation
async def get_first_active_membership(
    session: AsyncSession, user_id: int
) -> Optional[Membership]:
    """Oldest ACTIVE membership; the default club for exam operations"""
    result = await session.execute(
        select(Membership)
        .where(
            and_(
                Membership.user_id == user_id,
                Membership.status == MembershipStatus.ACTIVE,
            )
        )
        .order_by(Membership.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


@db_operation
async def get_club_admin_membership(
    session: AsyncSession, club_id: int
) -> Optional[Membership]:
    """First ACTIVE ADMIN_CLUBE of a club, with the user loaded"""
    result = await session.execute(
        select(Membership)
        .options(selectinload(Membership.user))
        .where(
            and_(
                Membership.club_id == club_id,
                Membership.role == ClubRole.ADMIN_CLUBE,
                Membership.status == MembershipStatus.ACTIVE,
            )
        )
        .order_by(Membership.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


@db_operation
async def get_club_memberships(
    session: AsyncSession,
    club_id: int,
    status: Optional[MembershipStatus] = None,
    oldest_first: bool = False,
) -> List[Membership]:
    conditions = [Membership.club_id == club_id]
    if status is not None:
        conditions.append(Membership.status == status)

    order = Membership.id.asc() if oldest_first else Membership.id.desc()
    result = await session.execute(
        select(Membership).where(and_(*conditions)).order_by(order)
    )
    return result.scalars().all()


@db_operation
async def get_user_memberships(session: AsyncSession, user_id: int) -> List[Membership]:
    result = await session.execute(
        select(Membership)
        .where(Membership.user_id == user_id)
        .order_by(Membership.id)
    )
    return result.scalars().all()


@db_operation
async def count_unit_memberships(session: AsyncSession, unit_id: int) -> int:
    result = await session.execute(
        select(func.count(Membership.id)).where(Membership.unit_id == unit_id)
    )
    return result.scalar() or 0
