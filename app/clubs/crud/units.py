from typing import List

from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation, with_db_transaction
from app.core.exceptions import BusinessLogicError, NotFoundError, ValidationError
from app.core.logging_utils import log_business_event
from app.clubs.crud.clubs import get_club_by_id
from app.clubs.crud.memberships import count_unit_memberships
from app.clubs.models.exams import Exam
from app.clubs.models.units import Unit
from app.clubs.models.users import User
from app.clubs.schemas.units import UnitCreate, UnitUpdate
from app.clubs.services.ownership import ensure_can_manage_unit, ensure_unit_deletable


@db_operation
async def get_unit_by_id(session: AsyncSession, unit_id: int) -> Unit:
    """Get unit by ID"""
    if not unit_id or unit_id <= 0:
        raise ValidationError("Unit ID must be positive")

    result = await session.execute(select(Unit).where(Unit.id == unit_id))
    unit = result.scalar_one_or_none()

    if not unit:
        raise NotFoundError("Unit", str(unit_id))

    return unit


async def get_unit_in_club(session: AsyncSession, unit_id: int, club_id: int) -> Unit:
    """
    Load a unit that must belong to ``club_id``.

    Raises:
        NotFoundError: unit does not exist
        BusinessLogicError: unit belongs to another club
    """
    unit = await get_unit_by_id(session, unit_id)
    if unit.club_id != club_id:
        raise BusinessLogicError(
            f"Unit {unit_id} does not belong to club {club_id}",
            rule="unit_club_mismatch",
            details={"unit_id": unit_id, "club_id": club_id},
        )
    return unit


@db_operation
async def get_club_units(session: AsyncSession, club_id: int) -> List[Unit]:
    await get_club_by_id(session, club_id)
    result = await session.execute(
        select(Unit).where(Unit.club_id == club_id).order_by(Unit.name)
    )
    return result.scalars().all()


@db_operation
async def count_unit_exams(session: AsyncSession, unit_id: int) -> int:
    result = await session.execute(
        select(func.count(Exam.id)).where(Exam.unit_id == unit_id)
    )
    return result.scalar() or 0


async def create_unit(session: AsyncSession, unit: UnitCreate, actor: User) -> Unit:
    club = await get_club_by_id(session, unit.club_id)
    await ensure_can_manage_unit(session, actor, club, "create")

    async def _create_unit_operation(session: AsyncSession):
        db_unit = Unit(name=unit.name, club_id=club.id)
        session.add(db_unit)
        await session.flush()
        return db_unit

    db_unit = await with_db_transaction(session, _create_unit_operation)
    await session.refresh(db_unit)

    log_business_event(
        "unit_created",
        "unit",
        db_unit.id,
        actor_id=actor.id,
        details={"club_id": club.id},
    )
    return db_unit


async def update_unit(
    session: AsyncSession, unit_id: int, unit_update: UnitUpdate, actor: User
) -> Unit:
    db_unit = await get_unit_by_id(session, unit_id)
    club = await get_club_by_id(session, db_unit.club_id)
    await ensure_can_manage_unit(session, actor, club, "update")

    update_data = unit_update.model_dump(exclude_unset=True)
    new_club_id = update_data.pop("club_id", None)
    if new_club_id is not None and new_club_id != db_unit.club_id:
        raise BusinessLogicError(
            "A unit cannot be moved to another club",
            rule="unit_reparent",
            details={"unit_id": unit_id, "club_id": db_unit.club_id},
        )
    if "name" in update_data and update_data["name"] is None:
        raise ValidationError("Unit name cannot be null")

    async def _update_unit_operation(session: AsyncSession):
        for key, value in update_data.items():
            setattr(db_unit, key, value)
        return db_unit

    await with_db_transaction(session, _update_unit_operation)
    await session.refresh(db_unit)

    log_business_event("unit_updated", "unit", unit_id, actor_id=actor.id)
    return db_unit


async def delete_unit(session: AsyncSession, unit_id: int, actor: User) -> bool:
    """Delete a unit nobody references; members and exams block the deletion"""
    db_unit = await get_unit_by_id(session, unit_id)
    club = await get_club_by_id(session, db_unit.club_id)
    await ensure_can_manage_unit(session, actor, club, "delete")

    memberships = await count_unit_memberships(session, unit_id)
    exams = await count_unit_exams(session, unit_id)
    ensure_unit_deletable(memberships, exams)

    async def _delete_unit_operation(session: AsyncSession):
        await session.delete(db_unit)

    await with_db_transaction(session, _delete_unit_operation)

    log_business_event(
        "unit_deleted",
        "unit",
        unit_id,
        actor_id=actor.id,
        details={"club_id": club.id},
    )
    return True
