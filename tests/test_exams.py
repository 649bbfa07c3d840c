import pytest

from app.core.exceptions import (
    BusinessLogicError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.clubs.crud.exams import (
    copy_exam,
    create_exam,
    delete_exam,
    get_exam,
    get_exam_by_id,
    get_exam_questions,
    list_club_exams,
    list_public_exams,
    update_exam,
)
from app.clubs.models import ClubRole, ExamVisibility, GlobalRole, MembershipStatus
from app.clubs.schemas.exams import ExamCreate, ExamUpdate


def _exam_data(**kwargs):
    data = {"title": "Primeiros Socorros", "category": "Saúde"}
    data.update(kwargs)
    return ExamCreate(**data)


@pytest.mark.asyncio
async def test_instructor_creates_exam_in_own_club(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    instructor = await factory.user()
    await factory.membership(instructor, club, role=ClubRole.INSTRUTOR, unit=unit)

    exam = await create_exam(session, instructor, _exam_data())

    assert exam.club_id == club.id
    assert exam.creator_id == instructor.id
    assert exam.visibility == ExamVisibility.CLUB_PRIVATE


@pytest.mark.asyncio
async def test_desbravador_cannot_create_exam(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    pathfinder = await factory.user()
    await factory.membership(pathfinder, club, unit=unit)

    with pytest.raises(PermissionDeniedError):
        await create_exam(session, pathfinder, _exam_data())


@pytest.mark.asyncio
async def test_pending_member_cannot_create_exam(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    instructor = await factory.user()
    await factory.membership(
        instructor, club, role=ClubRole.INSTRUTOR, unit=unit, status=MembershipStatus.PENDING
    )

    with pytest.raises(PermissionDeniedError):
        await create_exam(session, instructor, _exam_data())


@pytest.mark.asyncio
async def test_unit_private_exam_needs_unit_of_the_same_club(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    foreign_unit = await factory.unit(await factory.club())
    counselor = await factory.user()
    await factory.membership(counselor, club, role=ClubRole.CONSELHEIRO, unit=unit)

    with pytest.raises(BusinessLogicError) as exc_info:
        await create_exam(
            session, counselor, _exam_data(visibility=ExamVisibility.UNIT_PRIVATE)
        )
    assert exc_info.value.details["rule"] == "unit_required"

    with pytest.raises(BusinessLogicError) as exc_info:
        await create_exam(
            session,
            counselor,
            _exam_data(visibility=ExamVisibility.UNIT_PRIVATE, unit_id=foreign_unit.id),
        )
    assert exc_info.value.details["rule"] == "unit_club_mismatch"

    exam = await create_exam(
        session,
        counselor,
        _exam_data(visibility=ExamVisibility.UNIT_PRIVATE, unit_id=unit.id),
    )
    assert exam.unit_id == unit.id


@pytest.mark.asyncio
async def test_master_needs_club_id_without_membership(session, factory):
    master = await factory.user(role=GlobalRole.MASTER)
    club = await factory.club()

    with pytest.raises(ValidationError):
        await create_exam(session, master, _exam_data())

    exam = await create_exam(session, master, _exam_data(club_id=club.id))
    assert exam.club_id == club.id


@pytest.mark.asyncio
async def test_copy_public_exam_with_questions(session, factory):
    source_club = await factory.club()
    author = await factory.user()
    source = await factory.exam(
        source_club, creator=author, visibility=ExamVisibility.PUBLIC, questions=5
    )

    club = await factory.club()
    admin = await factory.user()
    await factory.membership(admin, club, role=ClubRole.ADMIN_CLUBE)

    copy = await copy_exam(session, admin, source.id)

    assert copy.id != source.id
    assert copy.club_id == club.id
    assert copy.visibility == ExamVisibility.CLUB_PRIVATE
    assert copy.unit_id is None
    assert copy.original_exam_id == source.id
    assert copy.original_author_id == author.id
    assert copy.creator_id == admin.id

    questions = await get_exam_questions(session, copy.id)
    assert [q.ordering for q in questions] == [1, 2, 3, 4, 5]
    assert [q.statement for q in questions] == [f"Pergunta {n}" for n in range(1, 6)]
    assert len(await get_exam_questions(session, source.id)) == 5


@pytest.mark.asyncio
async def test_only_public_exams_can_be_copied(session, factory):
    source_club = await factory.club()
    source = await factory.exam(source_club, visibility=ExamVisibility.CLUB_PRIVATE)
    club = await factory.club()
    admin = await factory.user()
    await factory.membership(admin, club, role=ClubRole.ADMIN_CLUBE)

    with pytest.raises(PermissionDeniedError):
        await copy_exam(session, admin, source.id)


@pytest.mark.asyncio
async def test_public_library_lists_only_public_exams(session, factory):
    club = await factory.club()
    public = await factory.exam(club, visibility=ExamVisibility.PUBLIC)
    await factory.exam(club, visibility=ExamVisibility.CLUB_PRIVATE)

    exams = await list_public_exams(session)

    assert [exam.id for exam in exams] == [public.id]


@pytest.mark.asyncio
async def test_desbravador_listing(session, factory):
    club = await factory.club()
    own_unit = await factory.unit(club)
    other_unit = await factory.unit(club)
    pathfinder = await factory.user()
    await factory.membership(pathfinder, club, unit=own_unit)

    public = await factory.exam(club, visibility=ExamVisibility.PUBLIC)
    club_wide = await factory.exam(club, visibility=ExamVisibility.CLUB_PRIVATE)
    own = await factory.exam(club, visibility=ExamVisibility.UNIT_PRIVATE, unit=own_unit)
    await factory.exam(club, visibility=ExamVisibility.UNIT_PRIVATE, unit=other_unit)
    await factory.exam(await factory.club(), visibility=ExamVisibility.PUBLIC)

    exams = await list_club_exams(session, pathfinder)

    assert {exam.id for exam in exams} == {public.id, club_wide.id, own.id}


@pytest.mark.asyncio
async def test_staff_listing_sees_every_exam_of_the_club(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    counselor = await factory.user()
    await factory.membership(counselor, club, role=ClubRole.CONSELHEIRO, unit=unit)
    other_unit = await factory.unit(club)
    await factory.exam(club, visibility=ExamVisibility.UNIT_PRIVATE, unit=other_unit)
    await factory.exam(club)

    assert len(await list_club_exams(session, counselor)) == 2


@pytest.mark.asyncio
async def test_listing_requires_membership(session, factory):
    stranger = await factory.user()

    with pytest.raises(PermissionDeniedError):
        await list_club_exams(session, stranger)


@pytest.mark.asyncio
async def test_get_exam_visibility(session, factory):
    club = await factory.club()
    public = await factory.exam(club, visibility=ExamVisibility.PUBLIC, questions=2)
    private = await factory.exam(club)
    stranger = await factory.user()

    exam = await get_exam(session, None, public.id)
    assert len(exam.questions) == 2

    with pytest.raises(PermissionDeniedError):
        await get_exam(session, stranger, private.id)


@pytest.mark.asyncio
async def test_update_exam_rules(session, factory):
    club = await factory.club()
    unit = await factory.unit(club)
    author = await factory.user()
    await factory.membership(author, club, role=ClubRole.INSTRUTOR, unit=unit)
    colleague = await factory.user()
    await factory.membership(colleague, club, role=ClubRole.INSTRUTOR, unit=unit)
    exam = await factory.exam(club, creator=author)

    with pytest.raises(PermissionDeniedError):
        await update_exam(session, colleague, exam.id, ExamUpdate(title="Outro"))

    with pytest.raises(BusinessLogicError):
        await update_exam(
            session, author, exam.id, ExamUpdate(visibility=ExamVisibility.UNIT_PRIVATE)
        )

    updated = await update_exam(
        session,
        author,
        exam.id,
        ExamUpdate(visibility=ExamVisibility.UNIT_PRIVATE, unit_id=unit.id),
    )
    assert updated.visibility == ExamVisibility.UNIT_PRIVATE
    assert updated.unit_id == unit.id


@pytest.mark.asyncio
async def test_delete_exam_keeps_copies(session, factory):
    source_club = await factory.club()
    master = await factory.user(role=GlobalRole.MASTER)
    source = await factory.exam(source_club, visibility=ExamVisibility.PUBLIC, questions=3)
    source_id = source.id

    club = await factory.club()
    admin = await factory.user()
    await factory.membership(admin, club, role=ClubRole.ADMIN_CLUBE)
    copy = await copy_exam(session, admin, source_id)

    await delete_exam(session, master, source_id)

    with pytest.raises(NotFoundError):
        await get_exam_by_id(session, source_id)
    assert await get_exam_questions(session, source_id) == []

    remaining = await get_exam_by_id(session, copy.id, with_questions=True)
    assert remaining.original_exam_id is None
    assert len(remaining.questions) == 3
