"""
Membership Service - lifecycle of club memberships.

A membership is created PENDING by a join request, becomes ACTIVE when a
club administrator approves it and is deleted on rejection or removal.
There is no REJECTED state: a rejected applicant simply files a new request.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.database import with_db_transaction
from app.core.exceptions import (
    BusinessLogicError,
    DuplicateError,
    PermissionDeniedError,
    ValidationError,
)
from app.core.logging_utils import log_business_event
from app.clubs.crud.clubs import get_club_by_id
from app.clubs.crud.memberships import (
    get_club_admin_membership,
    get_club_memberships,
    get_membership_by_id,
    get_membership_for_user,
    get_user_memberships,
)
from app.clubs.crud.units import get_unit_in_club
from app.clubs.models.clubs import Club
from app.clubs.models.enums import MembershipStatus
from app.clubs.models.memberships import Membership
from app.clubs.models.users import User
from app.clubs.schemas.memberships import (
    MembershipApprove,
    MembershipRequestCreate,
    MembershipUpdate,
)
from app.clubs.services.authority import (
    Authority,
    ensure_club_access,
    ensure_club_admin,
    get_club_authority,
    is_club_admin,
)
from app.clubs.services.membership_rules import (
    apply_office_rule,
    check_not_admin_request,
    check_request_rules,
    check_unit_requirement,
    compute_age,
    derive_effective_role,
    role_adjustment_message,
)
from app.clubs.services.notification_service import Notifier, notify_safely

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Membership state machine bound to one database session.

    Args:
        session: Request scoped database session
        notifier: Receives best-effort membership notifications
        clock: Source of "today" for age computation
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier,
        clock: Clock = system_clock,
    ):
        self.session = session
        self.notifier = notifier
        self.clock = clock

    async def request_membership(
        self, user: User, data: MembershipRequestCreate
    ) -> Tuple[Membership, Optional[str]]:
        """
        File a join request.

        Returns:
            The PENDING membership and an advisory message when the
            requested role was adjusted, None otherwise.
        """
        user_id = user.id
        club = await get_club_by_id(self.session, data.club_id)
        club_id = club.id

        existing = await get_membership_for_user(self.session, user_id, club_id)
        if existing:
            raise DuplicateError("Membership", "user_id,club_id", f"{user_id},{club_id}")

        today = self.clock.today()
        if data.birth_date > today:
            raise ValidationError("Birth date cannot be in the future")
        age = compute_age(data.birth_date, today)

        role = derive_effective_role(data.desired_role, age, data.baptized)
        advisory = role_adjustment_message(data.desired_role, role)

        check_request_rules(role, age, data.baptized, data.unit_id)
        if data.unit_id:
            await get_unit_in_club(self.session, data.unit_id, club_id)
        unit_id = apply_office_rule(role, data.specific_office, data.unit_id)
        check_not_admin_request(role)

        async def _create_membership_operation(session: AsyncSession):
            membership = Membership(
                user_id=user_id,
                club_id=club_id,
                unit_id=unit_id,
                role=role,
                status=MembershipStatus.PENDING,
                birth_date=data.birth_date,
                baptized=data.baptized,
                specific_office=data.specific_office,
            )
            session.add(membership)
            await session.flush()
            return membership

        try:
            membership = await with_db_transaction(
                self.session, _create_membership_operation
            )
        except IntegrityError:
            # a concurrent request for the same pair won the insert
            logger.info(f"Concurrent membership request for user {user_id} club {club_id}")
            raise DuplicateError("Membership", "user_id,club_id", f"{user_id},{club_id}")

        await self.session.refresh(membership)

        log_business_event(
            "membership_requested",
            "membership",
            membership.id,
            actor_id=user_id,
            details={
                "club_id": club_id,
                "desired_role": data.desired_role.value,
                "role": role.value,
                "unit_id": unit_id,
            },
        )

        await notify_safely(
            self._notify_new_request(user, club, membership),
            f"new membership request {membership.id}",
        )
        return membership, advisory

    async def approve(
        self, membership_id: int, approver: User, data: MembershipApprove
    ) -> Membership:
        """Activate a PENDING membership with the role chosen by the approver"""
        membership = await get_membership_by_id(self.session, membership_id)
        if membership.status != MembershipStatus.PENDING:
            raise BusinessLogicError(
                "Membership request was already processed",
                rule="already_processed",
                details={"membership_id": membership_id},
            )

        club = await get_club_by_id(self.session, membership.club_id)
        await ensure_club_admin(self.session, approver, club, "approve", "membership")

        # fields the approver leaves out keep the applicant's values
        sent = data.model_dump(exclude_unset=True)
        office = sent.get("specific_office", membership.specific_office)
        unit_id = sent.get("unit_id", membership.unit_id)

        check_unit_requirement(data.role, data.unit_id)
        if data.unit_id:
            await get_unit_in_club(self.session, data.unit_id, club.id)
        unit_id = apply_office_rule(data.role, office, unit_id)

        async def _approve_operation(session: AsyncSession):
            membership.role = data.role
            membership.unit_id = unit_id
            membership.specific_office = office
            membership.status = MembershipStatus.ACTIVE
            return membership

        await with_db_transaction(self.session, _approve_operation)
        await self.session.refresh(membership)

        log_business_event(
            "membership_approved",
            "membership",
            membership.id,
            actor_id=approver.id,
            details={"club_id": club.id, "role": data.role.value, "unit_id": unit_id},
        )

        await notify_safely(
            self._notify_approved(club, membership),
            f"membership {membership.id} approved",
        )
        return membership

    async def reject(self, membership_id: int, approver: User) -> None:
        """Delete a PENDING membership"""
        membership = await get_membership_by_id(self.session, membership_id)
        if membership.status != MembershipStatus.PENDING:
            raise BusinessLogicError(
                "Only pending requests can be rejected",
                rule="already_processed",
                details={"membership_id": membership_id},
            )

        club = await get_club_by_id(self.session, membership.club_id)
        await ensure_club_admin(self.session, approver, club, "reject", "membership")

        member_id = membership.user_id

        async def _reject_operation(session: AsyncSession):
            await session.delete(membership)

        await with_db_transaction(self.session, _reject_operation)

        log_business_event(
            "membership_rejected",
            "membership",
            membership_id,
            actor_id=approver.id,
            details={"club_id": club.id, "user_id": member_id},
        )

        await notify_safely(
            self._notify_rejected(member_id, club),
            f"membership {membership_id} rejected",
        )

    async def update(
        self, membership_id: int, actor: User, data: MembershipUpdate
    ) -> Membership:
        """Change unit or office of a membership (club administrators only)"""
        membership = await get_membership_by_id(self.session, membership_id)
        club = await get_club_by_id(self.session, membership.club_id)
        await ensure_club_admin(self.session, actor, club, "update", "membership")

        update_data = data.model_dump(exclude_unset=True)
        unit_id = update_data.get("unit_id", membership.unit_id)
        office = update_data.get("specific_office", membership.specific_office)

        check_unit_requirement(membership.role, unit_id)
        unit_id = apply_office_rule(membership.role, office, unit_id)
        if unit_id:
            await get_unit_in_club(self.session, unit_id, club.id)

        async def _update_operation(session: AsyncSession):
            membership.unit_id = unit_id
            membership.specific_office = office
            return membership

        await with_db_transaction(self.session, _update_operation)
        await self.session.refresh(membership)

        log_business_event(
            "membership_updated",
            "membership",
            membership.id,
            actor_id=actor.id,
            details={"unit_id": unit_id, "specific_office": office},
        )
        return membership

    async def remove(self, membership_id: int, actor: User) -> None:
        """Delete a membership; allowed to MASTER, club administrators and the member"""
        membership = await get_membership_by_id(self.session, membership_id)
        club_id = membership.club_id

        if membership.user_id != actor.id:
            club = await get_club_by_id(self.session, club_id)
            authority = await get_club_authority(self.session, actor, club)
            if not is_club_admin(authority):
                raise PermissionDeniedError(
                    "remove",
                    "membership",
                    "only MASTER, the club administrators or the member can do this",
                )

        async def _remove_operation(session: AsyncSession):
            await session.delete(membership)

        await with_db_transaction(self.session, _remove_operation)

        log_business_event(
            "membership_removed",
            "membership",
            membership_id,
            actor_id=actor.id,
            details={"club_id": club_id},
        )

    async def get(self, membership_id: int, actor: User) -> Membership:
        membership = await get_membership_by_id(self.session, membership_id)
        if membership.user_id != actor.id:
            club = await get_club_by_id(self.session, membership.club_id)
            await ensure_club_access(self.session, actor, club, "view")
        return membership

    async def list_pending(self, club_id: int, actor: User) -> List[Membership]:
        """Pending requests of a club, oldest first"""
        club = await get_club_by_id(self.session, club_id)
        await ensure_club_admin(self.session, actor, club, "list", "membership requests")
        return await get_club_memberships(
            self.session, club.id, status=MembershipStatus.PENDING, oldest_first=True
        )

    async def list_club_members(self, club_id: int, actor: User) -> List[Membership]:
        club = await get_club_by_id(self.session, club_id)
        authority = await ensure_club_access(self.session, actor, club, "list members of")
        if authority == Authority.MEMBER:
            return await get_club_memberships(
                self.session, club.id, status=MembershipStatus.ACTIVE
            )
        return await get_club_memberships(self.session, club.id)

    async def list_my_memberships(self, user: User) -> List[Membership]:
        return await get_user_memberships(self.session, user.id)

    async def _notify_new_request(
        self, requester: User, club: Club, membership: Membership
    ) -> None:
        admin_membership = await get_club_admin_membership(self.session, club.id)
        if not admin_membership:
            logger.info(f"Club {club.id} has no active administrator to notify")
            return
        await self.notifier.notify_new_request(
            admin_membership.user, requester, club, membership
        )

    async def _notify_approved(self, club: Club, membership: Membership) -> None:
        member = await self.session.get(User, membership.user_id)
        if member:
            await self.notifier.notify_approved(member, club, membership)

    async def _notify_rejected(self, member_id: int, club: Club) -> None:
        member = await self.session.get(User, member_id)
        if member:
            await self.notifier.notify_rejected(member, club)
