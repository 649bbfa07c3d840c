import math

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.dependencies import get_current_user
from app.clubs.crud.clubs import (
    create_club,
    delete_club,
    get_club_by_id,
    get_club_by_slug,
    get_clubs_paginated,
    update_club,
)
from app.clubs.models.users import User
from app.clubs.schemas.clubs import ClubCreate, ClubListResponse, ClubRead, ClubUpdate

router = APIRouter(prefix="/clubs", tags=["Clubs"])


@router.post("/", response_model=ClubRead, status_code=status.HTTP_201_CREATED)
async def create_new_club(
    club: ClubCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Create a new club.

    - **name**: Club name (required)
    - **slug**: Unique URL name (optional, generated from the name)
    - **city** / **state**: Location (required)
    - **country**: Defaults to Brasil

    Users other than MASTER can create a single club and become its creator.
    """
    return await create_club(db, club, current_user)


@router.get("/", response_model=ClubListResponse)
async def get_clubs_list(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    size: int = Query(10, ge=1, le=100, description="Number of items per page"),
    db: AsyncSession = Depends(get_session),
):
    """Get paginated list of all clubs, newest first"""
    skip = (page - 1) * size
    clubs, total = await get_clubs_paginated(db, skip=skip, limit=size)

    return ClubListResponse(
        clubs=[ClubRead.model_validate(club) for club in clubs],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 0,
    )


@router.get("/slug/{slug}", response_model=ClubRead)
async def get_club_by_slug_endpoint(slug: str, db: AsyncSession = Depends(get_session)):
    return await get_club_by_slug(db, slug)


@router.get("/{club_id}", response_model=ClubRead)
async def get_club(club_id: int, db: AsyncSession = Depends(get_session)):
    return await get_club_by_id(db, club_id)


@router.patch("/{club_id}", response_model=ClubRead)
async def update_club_details(
    club_id: int,
    club_update: ClubUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Update club details (MASTER, club creator or ADMIN_CLUBE)"""
    return await update_club(db, club_id, club_update, current_user)


@router.delete("/{club_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_club_endpoint(
    club_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a club with everything that belongs to it (MASTER only)"""
    await delete_club(db, club_id, current_user)
