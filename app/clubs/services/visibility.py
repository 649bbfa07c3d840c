"""Who may see and change exams."""
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from app.clubs.models.enums import ClubRole, ExamVisibility, MembershipStatus
from app.clubs.models.exams import Exam
from app.clubs.models.memberships import Membership
from app.clubs.models.users import User
from app.clubs.services.authority import Authority, is_club_admin

RESOURCE_MANAGER_ROLES = frozenset(
    {
        ClubRole.ADMIN_CLUBE,
        ClubRole.DIRETORIA,
        ClubRole.CONSELHEIRO,
        ClubRole.INSTRUTOR,
    }
)


def is_resource_manager(role: ClubRole) -> bool:
    return role in RESOURCE_MANAGER_ROLES


def can_view(user: Optional[User], exam: Exam, membership: Optional[Membership]) -> bool:
    """
    PUBLIC exams are visible to everybody, MASTER sees everything, anyone
    else needs an ACTIVE membership in the exam club (and in the exam unit
    for UNIT_PRIVATE exams).
    """
    if exam.visibility == ExamVisibility.PUBLIC:
        return True
    if user is not None and user.is_master:
        return True
    if (
        membership is None
        or membership.status != MembershipStatus.ACTIVE
        or membership.club_id != exam.club_id
    ):
        return False
    if exam.visibility == ExamVisibility.UNIT_PRIVATE:
        return membership.unit_id is not None and membership.unit_id == exam.unit_id
    return True


def club_listing_clause(membership: Membership) -> ColumnElement:
    """
    Filter for the club exam listing of ``membership``.

    Only exams of the member's club are listed. DESBRAVADOR members see
    the public and club-wide ones plus those of their own unit; staff roles
    see all of them.
    """
    same_club = Exam.club_id == membership.club_id
    if membership.role != ClubRole.DESBRAVADOR:
        return same_club

    conditions = [
        Exam.visibility == ExamVisibility.PUBLIC,
        Exam.visibility == ExamVisibility.CLUB_PRIVATE,
    ]
    if membership.unit_id is not None:
        conditions.append(
            and_(
                Exam.visibility == ExamVisibility.UNIT_PRIVATE,
                Exam.unit_id == membership.unit_id,
            )
        )
    return and_(same_club, or_(*conditions))


def can_mutate(user: User, exam: Exam, authority: Authority) -> bool:
    """Same rule for exam edits, deletion and every question change"""
    if user.is_master:
        return True
    if exam.creator_id is not None and exam.creator_id == user.id:
        return True
    return is_club_admin(authority)
