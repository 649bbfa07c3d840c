import pytest

from app.core.exceptions import DuplicateError, NotFoundError, PermissionDeniedError
from app.clubs.crud.regionals import (
    link_club,
    list_club_regionals,
    list_regional_clubs,
    unlink_club,
)
from app.clubs.models import GlobalRole


@pytest.mark.asyncio
async def test_master_links_and_unlinks_regional(session, factory):
    master = await factory.user(role=GlobalRole.MASTER)
    regional = await factory.user("regional", role=GlobalRole.REGIONAL)
    club = await factory.club()

    link = await link_club(session, master, regional.id, club.id)

    assert link.regional_id == regional.id
    assert [c.id for c in await list_regional_clubs(session, regional.id)] == [club.id]
    assert [u.id for u in await list_club_regionals(session, club.id)] == [regional.id]

    await unlink_club(session, master, regional.id, club.id)
    assert await list_regional_clubs(session, regional.id) == []


@pytest.mark.asyncio
async def test_duplicate_link_is_conflict(session, factory):
    master = await factory.user(role=GlobalRole.MASTER)
    regional = await factory.user(role=GlobalRole.REGIONAL)
    club = await factory.club()
    regional_id, club_id = regional.id, club.id
    await link_club(session, master, regional_id, club_id)

    with pytest.raises(DuplicateError):
        await link_club(session, master, regional_id, club_id)


@pytest.mark.asyncio
async def test_only_regional_users_can_be_linked(session, factory):
    master = await factory.user(role=GlobalRole.MASTER)
    user = await factory.user()
    club = await factory.club()

    with pytest.raises(PermissionDeniedError):
        await link_club(session, master, user.id, club.id)


@pytest.mark.asyncio
async def test_only_master_manages_links(session, factory):
    regional = await factory.user(role=GlobalRole.REGIONAL)
    club = await factory.club()

    with pytest.raises(PermissionDeniedError):
        await link_club(session, regional, regional.id, club.id)


@pytest.mark.asyncio
async def test_unlink_missing_link(session, factory):
    master = await factory.user(role=GlobalRole.MASTER)
    regional = await factory.user(role=GlobalRole.REGIONAL)
    club = await factory.club()

    with pytest.raises(NotFoundError):
        await unlink_club(session, master, regional.id, club.id)
