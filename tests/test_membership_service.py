from datetime import date

import pytest
import pytest_asyncio

from app.core.exceptions import (
    BusinessLogicError,
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.clubs.crud.memberships import get_membership_by_id, get_user_memberships
from app.clubs.models import ClubRole, GlobalRole, MembershipStatus
from app.clubs.schemas.memberships import (
    MembershipApprove,
    MembershipRequestCreate,
    MembershipUpdate,
)
from app.clubs.services import membership_service as membership_service_module


def _request(club, role=ClubRole.DESBRAVADOR, unit=None, **kwargs):
    data = {
        "club_id": club.id,
        "desired_role": role,
        "unit_id": unit.id if unit else None,
        "birth_date": date(2012, 3, 1),
        "baptized": False,
    }
    data.update(kwargs)
    return MembershipRequestCreate(**data)


@pytest_asyncio.fixture
async def club_with_admin(factory):
    admin = await factory.user("admin")
    club = await factory.club()
    await factory.membership(admin, club, role=ClubRole.ADMIN_CLUBE)
    unit = await factory.unit(club)
    return admin, club, unit


@pytest.mark.asyncio
async def test_unbaptized_adult_counselor_becomes_instrutor(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    applicant = await factory.user()

    membership, advisory = await service.request_membership(
        applicant,
        _request(
            club,
            role=ClubRole.CONSELHEIRO,
            unit=unit,
            birth_date=date(2001, 1, 10),
            baptized=False,
        ),
    )

    assert membership.role == ClubRole.INSTRUTOR
    assert membership.status == MembershipStatus.PENDING
    assert membership.unit_id == unit.id
    assert advisory is not None


@pytest.mark.asyncio
async def test_request_notifies_club_admin(service, factory, notifier, club_with_admin):
    admin, club, unit = club_with_admin
    applicant = await factory.user()

    _, advisory = await service.request_membership(applicant, _request(club, unit=unit))

    assert advisory is None
    assert notifier.new_requests == [(admin.id, applicant.id, club.id)]


@pytest.mark.asyncio
async def test_request_for_missing_club(service, factory):
    applicant = await factory.user()

    with pytest.raises(NotFoundError):
        await service.request_membership(
            applicant,
            MembershipRequestCreate(
                club_id=999,
                desired_role=ClubRole.DIRETORIA,
                birth_date=date(1990, 1, 1),
                baptized=True,
            ),
        )


@pytest.mark.asyncio
async def test_second_request_is_conflict_whatever_the_status(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    applicant = await factory.user()
    await service.request_membership(applicant, _request(club, unit=unit))

    with pytest.raises(DuplicateError):
        await service.request_membership(applicant, _request(club, unit=unit))

    member = await factory.user()
    await factory.membership(member, club, unit=unit)
    with pytest.raises(DuplicateError):
        await service.request_membership(member, _request(club, unit=unit))


@pytest.mark.asyncio
async def test_concurrent_request_loses_on_unique_constraint(
    service, session, factory, club_with_admin, monkeypatch
):
    _, club, unit = club_with_admin
    applicant = await factory.user()
    applicant_id, club_id = applicant.id, club.id
    await service.request_membership(applicant, _request(club, unit=unit))

    # the second request does not see the first one, as in a race
    async def _not_found(session, user_id, club_id):
        return None

    monkeypatch.setattr(membership_service_module, "get_membership_for_user", _not_found)

    with pytest.raises(DuplicateError):
        await service.request_membership(applicant, _request(club, unit=unit))

    memberships = await get_user_memberships(session, applicant_id)
    assert [m.club_id for m in memberships] == [club_id]


@pytest.mark.asyncio
async def test_future_birth_date_is_rejected(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    applicant = await factory.user()

    with pytest.raises(ValidationError):
        await service.request_membership(
            applicant, _request(club, unit=unit, birth_date=date(2027, 1, 1))
        )


@pytest.mark.asyncio
async def test_unit_from_other_club_is_rejected(service, factory, club_with_admin):
    _, club, _ = club_with_admin
    other_club = await factory.club()
    foreign_unit = await factory.unit(other_club)
    applicant = await factory.user()

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.request_membership(applicant, _request(club, unit=foreign_unit))
    assert exc_info.value.details["rule"] == "unit_club_mismatch"


@pytest.mark.asyncio
async def test_missing_unit_is_not_found(service, factory, club_with_admin):
    _, club, _ = club_with_admin
    applicant = await factory.user()

    with pytest.raises(NotFoundError):
        await service.request_membership(applicant, _request(club, unit_id=999))


@pytest.mark.asyncio
async def test_director_office_clears_unit(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    applicant = await factory.user()

    membership, _ = await service.request_membership(
        applicant,
        _request(
            club,
            role=ClubRole.DIRETORIA,
            unit=unit,
            birth_date=date(1985, 5, 5),
            baptized=True,
            specific_office="Diretor",
        ),
    )

    assert membership.unit_id is None
    assert membership.specific_office == "Diretor"


@pytest.mark.asyncio
async def test_director_office_still_checks_supplied_unit(service, factory, club_with_admin):
    _, club, _ = club_with_admin
    foreign_unit = await factory.unit(await factory.club())
    applicant = await factory.user()

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.request_membership(
            applicant,
            _request(
                club,
                role=ClubRole.DIRETORIA,
                unit=foreign_unit,
                birth_date=date(1985, 5, 5),
                baptized=True,
                specific_office="Diretor",
            ),
        )
    assert exc_info.value.details["rule"] == "unit_club_mismatch"


@pytest.mark.asyncio
async def test_admin_role_cannot_be_requested(service, factory, club_with_admin):
    _, club, _ = club_with_admin
    applicant = await factory.user()

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.request_membership(
            applicant,
            _request(
                club,
                role=ClubRole.ADMIN_CLUBE,
                birth_date=date(1980, 1, 1),
                baptized=True,
            ),
        )
    assert exc_info.value.details["rule"] == "admin_not_requestable"


@pytest.mark.asyncio
async def test_approve_changes_only_role_unit_and_office(
    service, factory, notifier, club_with_admin
):
    admin, club, unit = club_with_admin
    applicant = await factory.user()
    pending = await factory.membership(
        applicant,
        club,
        role=ClubRole.DESBRAVADOR,
        unit=unit,
        status=MembershipStatus.PENDING,
        birth_date=date(1995, 7, 7),
    )

    approved = await service.approve(
        pending.id,
        admin,
        MembershipApprove(role=ClubRole.DIRETORIA, specific_office="Tesoureiro", unit_id=unit.id),
    )

    assert approved.status == MembershipStatus.ACTIVE
    assert approved.role == ClubRole.DIRETORIA
    assert approved.specific_office == "Tesoureiro"
    assert approved.unit_id == unit.id
    assert approved.user_id == applicant.id
    assert approved.club_id == club.id
    assert approved.birth_date == date(1995, 7, 7)
    assert notifier.approved == [(applicant.id, club.id)]


@pytest.mark.asyncio
async def test_master_approving_desbravador_without_unit(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    master = await factory.user(role=GlobalRole.MASTER)
    applicant = await factory.user()
    pending = await factory.membership(
        applicant, club, unit=unit, status=MembershipStatus.PENDING
    )

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.approve(pending.id, master, MembershipApprove(role=ClubRole.DESBRAVADOR))
    assert exc_info.value.details["rule"] == "unit_required"


@pytest.mark.asyncio
async def test_approve_keeps_office_the_approver_left_out(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    applicant = await factory.user()
    pending, _ = await service.request_membership(
        applicant,
        _request(
            club,
            role=ClubRole.DIRETORIA,
            unit=unit,
            birth_date=date(1985, 5, 5),
            baptized=True,
            specific_office="Tesoureiro",
        ),
    )

    approved = await service.approve(
        pending.id, admin, MembershipApprove(role=ClubRole.DIRETORIA, unit_id=unit.id)
    )

    assert approved.status == MembershipStatus.ACTIVE
    assert approved.specific_office == "Tesoureiro"
    assert approved.unit_id == unit.id


@pytest.mark.asyncio
async def test_approve_keeps_stored_director_office_and_clears_unit(
    service, factory, club_with_admin
):
    admin, club, unit = club_with_admin
    applicant = await factory.user()
    pending = await factory.membership(
        applicant,
        club,
        role=ClubRole.DIRETORIA,
        status=MembershipStatus.PENDING,
        specific_office="Diretor",
    )

    approved = await service.approve(
        pending.id, admin, MembershipApprove(role=ClubRole.DIRETORIA, unit_id=unit.id)
    )

    assert approved.specific_office == "Diretor"
    assert approved.unit_id is None


@pytest.mark.asyncio
async def test_approve_rejects_foreign_unit_even_for_director(
    service, factory, club_with_admin
):
    admin, club, _ = club_with_admin
    foreign_unit = await factory.unit(await factory.club())
    applicant = await factory.user()
    pending = await factory.membership(
        applicant, club, role=ClubRole.DIRETORIA, status=MembershipStatus.PENDING
    )

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.approve(
            pending.id,
            admin,
            MembershipApprove(
                role=ClubRole.DIRETORIA, unit_id=foreign_unit.id, specific_office="Diretor"
            ),
        )
    assert exc_info.value.details["rule"] == "unit_club_mismatch"


@pytest.mark.asyncio
async def test_approve_twice_is_rejected(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    member = await factory.user()
    active = await factory.membership(member, club, unit=unit)

    with pytest.raises(BusinessLogicError) as exc_info:
        await service.approve(
            active.id, admin, MembershipApprove(role=ClubRole.DESBRAVADOR, unit_id=unit.id)
        )
    assert exc_info.value.details["rule"] == "already_processed"


@pytest.mark.asyncio
async def test_plain_member_cannot_approve(service, factory, club_with_admin):
    _, club, unit = club_with_admin
    member = await factory.user()
    await factory.membership(member, club, role=ClubRole.CONSELHEIRO, unit=unit)
    applicant = await factory.user()
    pending = await factory.membership(applicant, club, unit=unit, status=MembershipStatus.PENDING)

    with pytest.raises(PermissionDeniedError):
        await service.approve(
            pending.id, member, MembershipApprove(role=ClubRole.DESBRAVADOR, unit_id=unit.id)
        )


@pytest.mark.asyncio
async def test_club_creator_can_approve(service, factory):
    creator = await factory.user()
    club = await factory.club(creator=creator)
    unit = await factory.unit(club)
    applicant = await factory.user()
    pending = await factory.membership(applicant, club, unit=unit, status=MembershipStatus.PENDING)

    approved = await service.approve(
        pending.id, creator, MembershipApprove(role=ClubRole.DESBRAVADOR, unit_id=unit.id)
    )
    assert approved.status == MembershipStatus.ACTIVE


@pytest.mark.asyncio
async def test_reject_deletes_the_request(service, session, factory, notifier, club_with_admin):
    admin, club, unit = club_with_admin
    applicant = await factory.user()
    pending = await factory.membership(applicant, club, unit=unit, status=MembershipStatus.PENDING)
    membership_id = pending.id

    await service.reject(membership_id, admin)

    with pytest.raises(NotFoundError):
        await get_membership_by_id(session, membership_id)
    assert notifier.rejected == [(applicant.id, club.id)]

    membership, _ = await service.request_membership(applicant, _request(club, unit=unit))
    assert membership.status == MembershipStatus.PENDING


@pytest.mark.asyncio
async def test_failing_notifier_does_not_fail_approval(factory, session, clock, club_with_admin):
    class BrokenNotifier:
        async def notify_new_request(self, *args):
            raise RuntimeError("mail relay down")

        async def notify_approved(self, *args):
            raise RuntimeError("mail relay down")

        async def notify_rejected(self, *args):
            raise RuntimeError("mail relay down")

    service = membership_service_module.MembershipService(session, BrokenNotifier(), clock)
    admin, club, unit = club_with_admin
    applicant = await factory.user()

    membership, _ = await service.request_membership(applicant, _request(club, unit=unit))
    approved = await service.approve(
        membership.id, admin, MembershipApprove(role=ClubRole.DESBRAVADOR, unit_id=unit.id)
    )
    assert approved.status == MembershipStatus.ACTIVE


@pytest.mark.asyncio
async def test_update_moves_member_to_another_unit(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    other_unit = await factory.unit(club)
    member = await factory.user()
    membership = await factory.membership(member, club, unit=unit)

    updated = await service.update(membership.id, admin, MembershipUpdate(unit_id=other_unit.id))

    assert updated.unit_id == other_unit.id


@pytest.mark.asyncio
async def test_update_rejects_foreign_unit(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    foreign_unit = await factory.unit(await factory.club())
    member = await factory.user()
    membership = await factory.membership(member, club, unit=unit)

    with pytest.raises(BusinessLogicError):
        await service.update(membership.id, admin, MembershipUpdate(unit_id=foreign_unit.id))


@pytest.mark.asyncio
async def test_member_can_leave_but_not_remove_others(service, session, factory, club_with_admin):
    _, club, unit = club_with_admin
    member = await factory.user()
    other = await factory.user()
    membership = await factory.membership(member, club, unit=unit)
    other_membership = await factory.membership(other, club, unit=unit)
    membership_id = membership.id

    with pytest.raises(PermissionDeniedError):
        await service.remove(other_membership.id, member)

    await service.remove(membership_id, member)
    with pytest.raises(NotFoundError):
        await get_membership_by_id(session, membership_id)


@pytest.mark.asyncio
async def test_admin_removes_member(service, session, factory, club_with_admin):
    admin, club, unit = club_with_admin
    member = await factory.user()
    membership = await factory.membership(member, club, unit=unit)
    membership_id = membership.id

    await service.remove(membership_id, admin)

    with pytest.raises(NotFoundError):
        await get_membership_by_id(session, membership_id)


@pytest.mark.asyncio
async def test_pending_list_oldest_first_for_admins_only(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    first = await factory.membership(await factory.user(), club, unit=unit, status=MembershipStatus.PENDING)
    second = await factory.membership(await factory.user(), club, unit=unit, status=MembershipStatus.PENDING)

    pending = await service.list_pending(club.id, admin)
    assert [m.id for m in pending] == [first.id, second.id]

    member = await factory.user()
    await factory.membership(member, club, unit=unit)
    with pytest.raises(PermissionDeniedError):
        await service.list_pending(club.id, member)


@pytest.mark.asyncio
async def test_club_members_listing_by_authority(service, factory, club_with_admin):
    admin, club, unit = club_with_admin
    member = await factory.user()
    await factory.membership(member, club, unit=unit)
    await factory.membership(await factory.user(), club, unit=unit, status=MembershipStatus.PENDING)
    regional = await factory.user(role=GlobalRole.REGIONAL)
    await factory.regional_link(regional, club)

    assert len(await service.list_club_members(club.id, admin)) == 3
    assert len(await service.list_club_members(club.id, regional)) == 3
    members_view = await service.list_club_members(club.id, member)
    assert {m.status for m in members_view} == {MembershipStatus.ACTIVE}
    assert len(members_view) == 2
