import re
import unicodedata
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation, with_db_transaction
from app.core.exceptions import DuplicateError, NotFoundError, ValidationError
from app.core.logging_utils import log_business_event
from app.clubs.models.clubs import Club
from app.clubs.models.exams import Exam
from app.clubs.models.memberships import Membership
from app.clubs.models.questions import Question
from app.clubs.models.regional_links import RegionalClubLink
from app.clubs.models.units import Unit
from app.clubs.models.users import User
from app.clubs.schemas.clubs import ClubCreate, ClubUpdate
from app.clubs.services.ownership import (
    ensure_can_create_club,
    ensure_can_delete_club,
    ensure_can_manage_club,
)


def generate_slug(name: str) -> str:
    """'Águias da Serra' -> 'aguias-da-serra'"""
    slug = unicodedata.normalize("NFD", name.lower())
    slug = "".join(ch for ch in slug if not unicodedata.combining(ch))
    slug = re.sub(r"[^a-z0-9\s-]", "", slug).strip()
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


@db_operation
async def get_club_by_id(session: AsyncSession, club_id: int) -> Club:
    """Get club by ID"""
    if not club_id or club_id <= 0:
        raise ValidationError("Club ID must be positive")

    result = await session.execute(select(Club).where(Club.id == club_id))
    club = result.scalar_one_or_none()

    if not club:
        raise NotFoundError("Club", str(club_id))

    return club


@db_operation
async def get_club_by_slug(session: AsyncSession, slug: str) -> Club:
    if not slug or not slug.strip():
        raise ValidationError("Club slug cannot be empty")

    result = await session.execute(select(Club).where(Club.slug == slug.strip()))
    club = result.scalar_one_or_none()

    if not club:
        raise NotFoundError("Club", slug)

    return club


@db_operation
async def get_clubs_paginated(
    session: AsyncSession, skip: int = 0, limit: int = 10
) -> Tuple[List[Club], int]:
    """Get paginated list of clubs, newest first"""
    if skip < 0:
        raise ValidationError("Skip parameter must be >= 0")

    if limit <= 0 or limit > 100:
        raise ValidationError("Limit must be between 1 and 100")

    total_result = await session.execute(select(func.count(Club.id)))
    total = total_result.scalar() or 0

    result = await session.execute(
        select(Club).order_by(Club.created_at.desc(), Club.id.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all(), total


@db_operation
async def count_created_clubs(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        select(func.count(Club.id)).where(Club.creator_id == user_id)
    )
    return result.scalar() or 0


async def _ensure_slug_available(
    session: AsyncSession, slug: str, club_id: Optional[int] = None
) -> None:
    result = await session.execute(select(Club).where(Club.slug == slug))
    existing = result.scalar_one_or_none()
    if existing and existing.id != club_id:
        raise DuplicateError("Club", "slug", slug)


async def create_club(session: AsyncSession, club: ClubCreate, creator: User) -> Club:
    """Create a club; non-MASTER users become its creator and may not create another"""
    created = await count_created_clubs(session, creator.id)
    ensure_can_create_club(creator, created)

    slug = club.slug or generate_slug(club.name)
    if not slug:
        raise ValidationError("Cannot derive a slug from the club name")
    await _ensure_slug_available(session, slug)

    async def _create_club_operation(session: AsyncSession):
        club_data = club.model_dump()
        club_data["slug"] = slug
        club_data["country"] = club_data.get("country") or "Brasil"
        if not creator.is_master:
            club_data["creator_id"] = creator.id

        db_club = Club(**club_data)
        session.add(db_club)
        await session.flush()
        return db_club

    db_club = await with_db_transaction(session, _create_club_operation)
    await session.refresh(db_club)

    log_business_event(
        "club_created", "club", db_club.id, actor_id=creator.id, details={"slug": slug}
    )
    return db_club


async def update_club(
    session: AsyncSession, club_id: int, club_update: ClubUpdate, actor: User
) -> Club:
    db_club = await get_club_by_id(session, club_id)
    await ensure_can_manage_club(session, actor, db_club, "update")

    update_data = club_update.model_dump(exclude_unset=True)
    if update_data.get("slug") and update_data["slug"] != db_club.slug:
        await _ensure_slug_available(session, update_data["slug"], club_id)
    for field in ("name", "slug", "country"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"Club {field} cannot be null")

    async def _update_club_operation(session: AsyncSession):
        for key, value in update_data.items():
            setattr(db_club, key, value)
        return db_club

    await with_db_transaction(session, _update_club_operation)
    await session.refresh(db_club)

    log_business_event(
        "club_updated",
        "club",
        club_id,
        actor_id=actor.id,
        details={"fields": sorted(update_data)},
    )
    return db_club


async def delete_club(session: AsyncSession, club_id: int, actor: User) -> bool:
    """Delete a club with its units, memberships, regional links, exams and questions"""
    ensure_can_delete_club(actor)
    await get_club_by_id(session, club_id)

    async def _delete_club_operation(session: AsyncSession):
        await _manual_cascade_delete_club(session, club_id)
        await session.execute(delete(Club).where(Club.id == club_id))

    await with_db_transaction(session, _delete_club_operation)

    log_business_event("club_deleted", "club", club_id, actor_id=actor.id)
    return True


async def _manual_cascade_delete_club(session: AsyncSession, club_id: int):
    """Remove everything that belongs to the club, children first"""
    exam_ids = select(Exam.id).where(Exam.club_id == club_id).scalar_subquery()

    # copies made by other clubs keep their questions, only the link goes
    await session.execute(
        update(Exam)
        .where(Exam.original_exam_id.in_(exam_ids))
        .values(original_exam_id=None)
    )
    await session.execute(delete(Question).where(Question.exam_id.in_(exam_ids)))
    await session.execute(delete(Exam).where(Exam.club_id == club_id))
    await session.execute(delete(Membership).where(Membership.club_id == club_id))
    await session.execute(
        delete(RegionalClubLink).where(RegionalClubLink.club_id == club_id)
    )
    await session.execute(delete(Unit).where(Unit.club_id == club_id))
