"""
Role hierarchy resolver.

Every permission check in the clubs domain goes through ``resolve_authority``:
a principal's authority over one club is derived from their global role,
their ACTIVE membership in that club and, for REGIONAL users, the
supervision links created by a MASTER.
"""
import enum
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotSupervisingError, PermissionDeniedError
from app.clubs.crud.memberships import get_active_membership
from app.clubs.crud.regionals import get_regional_link
from app.clubs.models.clubs import Club
from app.clubs.models.enums import ClubRole, GlobalRole, MembershipStatus
from app.clubs.models.memberships import Membership
from app.clubs.models.regional_links import RegionalClubLink
from app.clubs.models.users import User

logger = logging.getLogger(__name__)


class Authority(str, enum.Enum):
    NONE = "NONE"
    MEMBER = "MEMBER"
    CLUB_ADMIN = "CLUB_ADMIN"
    SUPERVISOR = "SUPERVISOR"  # read access only
    SUPER = "SUPER"


ADMIN_AUTHORITIES = frozenset({Authority.CLUB_ADMIN, Authority.SUPER})


def is_club_admin(authority: Authority) -> bool:
    return authority in ADMIN_AUTHORITIES


def resolve_authority(
    user: User,
    club: Club,
    membership: Optional[Membership] = None,
    regional_link: Optional[RegionalClubLink] = None,
) -> Authority:
    """
    Classify ``user`` against ``club``.

    Order matters: MASTER bypass, then membership, then the regional link,
    so a REGIONAL who is also a member of the club is treated as a member.
    """
    if user.global_role == GlobalRole.MASTER:
        return Authority.SUPER

    is_creator = club.creator_id is not None and club.creator_id == user.id

    if (
        membership is not None
        and membership.club_id == club.id
        and membership.status == MembershipStatus.ACTIVE
    ):
        if membership.role == ClubRole.ADMIN_CLUBE or is_creator:
            return Authority.CLUB_ADMIN
        return Authority.MEMBER

    if is_creator:
        return Authority.CLUB_ADMIN

    if (
        user.global_role == GlobalRole.REGIONAL
        and regional_link is not None
        and regional_link.club_id == club.id
    ):
        return Authority.SUPERVISOR

    return Authority.NONE


async def get_club_authority(
    session: AsyncSession, user: User, club: Club
) -> Authority:
    if user.global_role == GlobalRole.MASTER:
        return Authority.SUPER

    membership = await get_active_membership(session, user.id, club.id)
    regional_link = None
    if membership is None and user.global_role == GlobalRole.REGIONAL:
        regional_link = await get_regional_link(session, user.id, club.id)

    return resolve_authority(user, club, membership, regional_link)


async def ensure_club_access(
    session: AsyncSession, user: User, club: Club, action: str = "access"
) -> Authority:
    """Any authority above NONE; REGIONAL users get a distinct error"""
    authority = await get_club_authority(session, user, club)

    if authority == Authority.NONE:
        if user.global_role == GlobalRole.REGIONAL:
            logger.info(
                f"Regional user {user.id} is not linked to club {club.id}",
                extra={"user_id": user.id, "club_id": club.id},
            )
            raise NotSupervisingError(user.id, club.id)
        raise PermissionDeniedError(
            action, "club", "you have no role in this club"
        )

    return authority


async def ensure_club_admin(
    session: AsyncSession,
    user: User,
    club: Club,
    action: str,
    resource: str,
) -> Authority:
    authority = await get_club_authority(session, user, club)

    if not is_club_admin(authority):
        raise PermissionDeniedError(
            action,
            resource,
            "only MASTER or the club administrators can do this",
        )

    return authority
