"""
Club and unit ownership guard.

Non-MASTER users may create a single club. Management of a club and of its
units belongs to MASTER, the club creator and its ACTIVE ADMIN_CLUBE
members; deleting a club is reserved to MASTER.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessLogicError, PermissionDeniedError
from app.clubs.models.clubs import Club
from app.clubs.models.memberships import Membership
from app.clubs.models.users import User
from app.clubs.services.authority import (
    ensure_club_admin,
    is_club_admin,
    resolve_authority,
)


def can_create_club(user: User, created_clubs: int) -> bool:
    if user.is_master:
        return True
    return created_clubs == 0


def ensure_can_create_club(user: User, created_clubs: int) -> None:
    if not can_create_club(user, created_clubs):
        raise PermissionDeniedError(
            "create",
            "club",
            "you already created a club, only MASTER can create several",
        )


def can_manage_club(
    user: User, club: Club, membership: Optional[Membership] = None
) -> bool:
    return is_club_admin(resolve_authority(user, club, membership))


def can_manage_unit(
    user: User, unit_club: Club, membership: Optional[Membership] = None
) -> bool:
    """Units are managed by whoever manages their club"""
    return can_manage_club(user, unit_club, membership)


def can_delete_club(user: User) -> bool:
    return user.is_master


def ensure_can_delete_club(user: User) -> None:
    if not can_delete_club(user):
        raise PermissionDeniedError("delete", "club", "only MASTER can delete clubs")


async def ensure_can_manage_club(
    session: AsyncSession, user: User, club: Club, action: str = "manage"
) -> None:
    await ensure_club_admin(session, user, club, action, "club")


async def ensure_can_manage_unit(
    session: AsyncSession, user: User, unit_club: Club, action: str = "manage"
) -> None:
    await ensure_club_admin(session, user, unit_club, action, "unit")


def ensure_unit_deletable(membership_count: int, exam_count: int = 0) -> None:
    if membership_count > 0:
        raise BusinessLogicError(
            f"Unit cannot be deleted, it has {membership_count} linked member(s)",
            rule="unit_has_members",
            details={"membership_count": membership_count},
        )
    if exam_count > 0:
        raise BusinessLogicError(
            f"Unit cannot be deleted, it has {exam_count} linked exam(s)",
            rule="unit_has_exams",
            details={"exam_count": exam_count},
        )
