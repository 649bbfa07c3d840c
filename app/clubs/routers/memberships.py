from typing import List

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_current_user, get_membership_service
from app.clubs.models.users import User
from app.clubs.schemas.memberships import (
    MembershipApprove,
    MembershipRead,
    MembershipRequestCreate,
    MembershipRequestResponse,
    MembershipUpdate,
)
from app.clubs.services.membership_service import MembershipService

router = APIRouter(prefix="/memberships", tags=["Memberships"])


@router.post(
    "/",
    response_model=MembershipRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_membership(
    data: MembershipRequestCreate,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """
    Ask to join a club.

    The request stays PENDING until a club administrator approves it. When
    the requested role had to be adjusted (unbaptized applicants aged 18 or
    more join as INSTRUTOR) the response carries an explanatory ``message``.
    """
    membership, message = await service.request_membership(current_user, data)
    return MembershipRequestResponse(
        membership=MembershipRead.model_validate(membership), message=message
    )


@router.get("/me", response_model=List[MembershipRead])
async def list_my_memberships(
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.list_my_memberships(current_user)


@router.get("/club/{club_id}", response_model=List[MembershipRead])
async def list_club_members(
    club_id: int,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Members of a club, visible to its members, administrators and supervisors"""
    return await service.list_club_members(club_id, current_user)


@router.get("/club/{club_id}/pending", response_model=List[MembershipRead])
async def list_pending_requests(
    club_id: int,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Pending join requests, oldest first (club administrators only)"""
    return await service.list_pending(club_id, current_user)


@router.get("/{membership_id}", response_model=MembershipRead)
async def get_membership(
    membership_id: int,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.get(membership_id, current_user)


@router.post("/{membership_id}/approve", response_model=MembershipRead)
async def approve_membership(
    membership_id: int,
    data: MembershipApprove,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Activate a pending request with the final role, unit and office"""
    return await service.approve(membership_id, current_user, data)


@router.post("/{membership_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_membership(
    membership_id: int,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Reject a pending request; the applicant may file a new one"""
    await service.reject(membership_id, current_user)


@router.patch("/{membership_id}", response_model=MembershipRead)
async def update_membership(
    membership_id: int,
    data: MembershipUpdate,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.update(membership_id, current_user, data)


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_membership(
    membership_id: int,
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Remove a member (MASTER, club administrators or the member)"""
    await service.remove(membership_id, current_user)
