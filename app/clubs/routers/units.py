from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.dependencies import get_current_user
from app.clubs.crud.units import (
    create_unit,
    delete_unit,
    get_club_units,
    get_unit_by_id,
    update_unit,
)
from app.clubs.models.users import User
from app.clubs.schemas.units import UnitCreate, UnitRead, UnitUpdate

router = APIRouter(prefix="/units", tags=["Units"])


@router.post("/", response_model=UnitRead, status_code=status.HTTP_201_CREATED)
async def create_new_unit(
    unit: UnitCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Create a unit inside a club (MASTER, club creator or ADMIN_CLUBE)"""
    return await create_unit(db, unit, current_user)


@router.get("/club/{club_id}", response_model=List[UnitRead])
async def list_club_units(club_id: int, db: AsyncSession = Depends(get_session)):
    return await get_club_units(db, club_id)


@router.get("/{unit_id}", response_model=UnitRead)
async def get_unit(unit_id: int, db: AsyncSession = Depends(get_session)):
    return await get_unit_by_id(db, unit_id)


@router.patch("/{unit_id}", response_model=UnitRead)
async def update_unit_details(
    unit_id: int,
    unit_update: UnitUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Rename a unit; moving it to another club is rejected"""
    return await update_unit(db, unit_id, unit_update, current_user)


@router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unit_endpoint(
    unit_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a unit that no membership or exam references"""
    await delete_unit(db, unit_id, current_user)
