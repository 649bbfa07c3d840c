from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.dependencies import get_current_user
from app.clubs.crud.regionals import (
    link_club,
    list_club_regionals,
    list_regional_clubs,
    unlink_club,
)
from app.clubs.models.users import User
from app.clubs.schemas.clubs import ClubRead
from app.clubs.schemas.regionals import (
    RegionalLinkCreate,
    RegionalLinkRead,
    RegionalUserRead,
)

router = APIRouter(prefix="/regionals", tags=["Regionals"])


@router.post(
    "/{regional_id}/clubs",
    response_model=RegionalLinkRead,
    status_code=status.HTTP_201_CREATED,
)
async def link_regional_to_club(
    regional_id: int,
    data: RegionalLinkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Let a REGIONAL user supervise a club (MASTER only)"""
    return await link_club(db, current_user, regional_id, data.club_id)


@router.delete(
    "/{regional_id}/clubs/{club_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def unlink_regional_from_club(
    regional_id: int,
    club_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await unlink_club(db, current_user, regional_id, club_id)


@router.get("/{regional_id}/clubs", response_model=List[ClubRead])
async def get_regional_clubs(
    regional_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_regional_clubs(db, regional_id)


@router.get("/club/{club_id}", response_model=List[RegionalUserRead])
async def get_club_regionals(
    club_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_club_regionals(db, club_id)
