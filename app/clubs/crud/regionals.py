from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation, with_db_transaction
from app.core.exceptions import (
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.core.logging_utils import log_business_event
from app.clubs.models.clubs import Club
from app.clubs.models.enums import GlobalRole
from app.clubs.models.regional_links import RegionalClubLink
from app.clubs.models.users import User


@db_operation
async def get_regional_link(
    session: AsyncSession, regional_id: int, club_id: int
) -> Optional[RegionalClubLink]:
    result = await session.execute(
        select(RegionalClubLink).where(
            and_(
                RegionalClubLink.regional_id == regional_id,
                RegionalClubLink.club_id == club_id,
            )
        )
    )
    return result.scalar_one_or_none()


def _ensure_master(actor: User, action: str) -> None:
    if not actor.is_master:
        raise PermissionDeniedError(
            action, "regional link", "only MASTER manages regional supervision"
        )


async def _get_user(session: AsyncSession, user_id: int) -> User:
    if not user_id or user_id <= 0:
        raise ValidationError("User ID must be positive")
    user = await session.get(User, user_id)
    if not user:
        raise NotFoundError("User", str(user_id))
    return user


async def _get_club(session: AsyncSession, club_id: int) -> Club:
    if not club_id or club_id <= 0:
        raise ValidationError("Club ID must be positive")
    club = await session.get(Club, club_id)
    if not club:
        raise NotFoundError("Club", str(club_id))
    return club


async def link_club(
    session: AsyncSession, actor: User, regional_id: int, club_id: int
) -> RegionalClubLink:
    """Grant a REGIONAL user supervision over a club (MASTER only)"""
    _ensure_master(actor, "create")

    regional = await _get_user(session, regional_id)
    if regional.global_role != GlobalRole.REGIONAL:
        raise PermissionDeniedError(
            "supervise",
            "club",
            "only users with the REGIONAL role can supervise clubs",
        )
    club = await _get_club(session, club_id)

    async def _link_operation(session: AsyncSession):
        link = RegionalClubLink(regional_id=regional.id, club_id=club.id)
        session.add(link)
        await session.flush()
        return link

    try:
        link = await with_db_transaction(session, _link_operation)
    except IntegrityError:
        raise DuplicateError(
            "RegionalClubLink", "regional_id,club_id", f"{regional_id},{club_id}"
        )

    await session.refresh(link)

    log_business_event(
        "regional_club_linked",
        "regional_link",
        link.id,
        actor_id=actor.id,
        details={"regional_id": regional_id, "club_id": club_id},
    )
    return link


async def unlink_club(
    session: AsyncSession, actor: User, regional_id: int, club_id: int
) -> None:
    _ensure_master(actor, "delete")

    link = await get_regional_link(session, regional_id, club_id)
    if not link:
        raise NotFoundError("RegionalClubLink", f"{regional_id},{club_id}")

    link_id = link.id

    async def _unlink_operation(session: AsyncSession):
        await session.delete(link)

    await with_db_transaction(session, _unlink_operation)

    log_business_event(
        "regional_club_unlinked",
        "regional_link",
        link_id,
        actor_id=actor.id,
        details={"regional_id": regional_id, "club_id": club_id},
    )


@db_operation
async def list_regional_clubs(session: AsyncSession, regional_id: int) -> List[Club]:
    """Clubs supervised by a regional, by name"""
    await _get_user(session, regional_id)

    result = await session.execute(
        select(Club)
        .join(RegionalClubLink, RegionalClubLink.club_id == Club.id)
        .where(RegionalClubLink.regional_id == regional_id)
        .order_by(Club.name)
    )
    return result.scalars().all()


@db_operation
async def list_club_regionals(session: AsyncSession, club_id: int) -> List[User]:
    await _get_club(session, club_id)

    result = await session.execute(
        select(User)
        .join(RegionalClubLink, RegionalClubLink.regional_id == User.id)
        .where(RegionalClubLink.club_id == club_id)
        .order_by(User.name)
    )
    return result.scalars().all()
