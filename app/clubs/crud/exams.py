from typing import List, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import db_operation, with_db_transaction
from app.core.exceptions import (
    BusinessLogicError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.core.logging_utils import log_business_event
from app.clubs.crud.clubs import get_club_by_id
from app.clubs.crud.memberships import get_active_membership, get_first_active_membership
from app.clubs.crud.units import get_unit_in_club
from app.clubs.models.clubs import Club
from app.clubs.models.enums import ExamVisibility
from app.clubs.models.exams import Exam
from app.clubs.models.memberships import Membership
from app.clubs.models.questions import Question
from app.clubs.models.users import User
from app.clubs.schemas.exams import ExamCreate, ExamUpdate
from app.clubs.services.authority import get_club_authority
from app.clubs.services.visibility import (
    can_mutate,
    can_view,
    club_listing_clause,
    is_resource_manager,
)


@db_operation
async def get_exam_by_id(
    session: AsyncSession, exam_id: int, with_questions: bool = False
) -> Exam:
    """Get exam by ID, optionally with its questions in order"""
    if not exam_id or exam_id <= 0:
        raise ValidationError("Exam ID must be positive")

    query = select(Exam).where(Exam.id == exam_id)
    if with_questions:
        query = query.options(selectinload(Exam.questions)).execution_options(
            populate_existing=True
        )

    result = await session.execute(query)
    exam = result.scalar_one_or_none()

    if not exam:
        raise NotFoundError("Exam", str(exam_id))

    return exam


@db_operation
async def get_exam_questions(session: AsyncSession, exam_id: int) -> List[Question]:
    result = await session.execute(
        select(Question)
        .where(Question.exam_id == exam_id)
        .order_by(Question.ordering, Question.id)
    )
    return result.scalars().all()


async def _resolve_target_club(
    session: AsyncSession, user: User, club_id: Optional[int], action: str
) -> Tuple[Club, Optional[Membership]]:
    """
    Club an exam is created in or copied to.

    Members act in ``club_id`` or, when omitted, in the club of their first
    ACTIVE membership, and need a resource-manager role there. MASTER may
    target any existing club.
    """
    if user.is_master:
        if club_id:
            club = await get_club_by_id(session, club_id)
            return club, await get_active_membership(session, user.id, club.id)
        membership = await get_first_active_membership(session, user.id)
        if not membership:
            raise ValidationError(
                "club_id is required for MASTER users without a club membership"
            )
        return await get_club_by_id(session, membership.club_id), membership

    if club_id:
        club = await get_club_by_id(session, club_id)
        membership = await get_active_membership(session, user.id, club.id)
    else:
        membership = await get_first_active_membership(session, user.id)
        club = None

    if not membership:
        raise PermissionDeniedError(
            action, "exam", "you must be an active member of a club"
        )
    if not is_resource_manager(membership.role):
        raise PermissionDeniedError(
            action,
            "exam",
            "only ADMIN_CLUBE, DIRETORIA, CONSELHEIRO or INSTRUTOR members can do this",
        )

    if club is None:
        club = await get_club_by_id(session, membership.club_id)
    return club, membership


async def _check_exam_unit(
    session: AsyncSession,
    visibility: ExamVisibility,
    unit_id: Optional[int],
    club_id: int,
) -> None:
    if visibility == ExamVisibility.UNIT_PRIVATE and not unit_id:
        raise BusinessLogicError(
            "unit_id is required when visibility is UNIT_PRIVATE",
            rule="unit_required",
            details={"visibility": visibility.value},
        )
    if unit_id:
        await get_unit_in_club(session, unit_id, club_id)


async def ensure_can_mutate_exam(
    session: AsyncSession, user: User, exam: Exam, action: str
) -> None:
    club = await get_club_by_id(session, exam.club_id)
    authority = await get_club_authority(session, user, club)
    if not can_mutate(user, exam, authority):
        raise PermissionDeniedError(
            action,
            "exam",
            "only the exam creator, the club administrators or MASTER can do this",
        )


async def create_exam(session: AsyncSession, user: User, exam: ExamCreate) -> Exam:
    club, _ = await _resolve_target_club(session, user, exam.club_id, "create")
    await _check_exam_unit(session, exam.visibility, exam.unit_id, club.id)

    async def _create_exam_operation(session: AsyncSession):
        exam_data = exam.model_dump(exclude={"club_id"})
        db_exam = Exam(**exam_data, club_id=club.id, creator_id=user.id)
        session.add(db_exam)
        await session.flush()
        return db_exam

    db_exam = await with_db_transaction(session, _create_exam_operation)
    await session.refresh(db_exam)

    log_business_event(
        "exam_created",
        "exam",
        db_exam.id,
        actor_id=user.id,
        details={"club_id": club.id, "visibility": exam.visibility.value},
    )
    return db_exam


async def copy_exam(
    session: AsyncSession,
    user: User,
    exam_id: int,
    target_club_id: Optional[int] = None,
) -> Exam:
    """
    Copy a PUBLIC exam with all its questions into the caller's club.

    The copy is CLUB_PRIVATE, has no unit and remembers the original exam
    and its author.
    """
    source = await get_exam_by_id(session, exam_id)
    if source.visibility != ExamVisibility.PUBLIC:
        raise PermissionDeniedError("copy", "exam", "only public exams can be copied")

    club, _ = await _resolve_target_club(session, user, target_club_id, "copy")
    source_questions = await get_exam_questions(session, source.id)

    async def _copy_exam_operation(session: AsyncSession):
        db_exam = Exam(
            title=source.title,
            description=source.description,
            category=source.category,
            visibility=ExamVisibility.CLUB_PRIVATE,
            reference_url=source.reference_url,
            club_id=club.id,
            unit_id=None,
            creator_id=user.id,
            original_author_id=source.creator_id,
            original_exam_id=source.id,
        )
        session.add(db_exam)
        await session.flush()

        for question in source_questions:
            session.add(
                Question(
                    exam_id=db_exam.id,
                    type=question.type,
                    statement=question.statement,
                    options=dict(question.options) if question.options else None,
                    correct_answer=question.correct_answer,
                    points=question.points,
                    ordering=question.ordering,
                )
            )
        await session.flush()
        return db_exam

    db_exam = await with_db_transaction(session, _copy_exam_operation)
    await session.refresh(db_exam)

    log_business_event(
        "exam_copied",
        "exam",
        db_exam.id,
        actor_id=user.id,
        details={
            "original_exam_id": source.id,
            "club_id": club.id,
            "questions": len(source_questions),
        },
    )
    return db_exam


@db_operation
async def list_public_exams(
    session: AsyncSession, skip: int = 0, limit: int = 50
) -> List[Exam]:
    """Public library, newest first"""
    if skip < 0:
        raise ValidationError("Skip parameter must be >= 0")
    if limit <= 0 or limit > 100:
        raise ValidationError("Limit must be between 1 and 100")

    result = await session.execute(
        select(Exam)
        .where(Exam.visibility == ExamVisibility.PUBLIC)
        .order_by(Exam.created_at.desc(), Exam.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


async def list_club_exams(
    session: AsyncSession, user: User, club_id: Optional[int] = None
) -> List[Exam]:
    """Exams of the caller's club filtered by what their role may see"""
    if club_id:
        await get_club_by_id(session, club_id)
        membership = await get_active_membership(session, user.id, club_id)
    else:
        membership = await get_first_active_membership(session, user.id)

    if membership:
        condition = club_listing_clause(membership)
    elif user.is_master:
        if not club_id:
            raise ValidationError(
                "club_id is required for MASTER users without a club membership"
            )
        condition = Exam.club_id == club_id
    else:
        raise PermissionDeniedError(
            "list", "exams", "you are not an active member of this club"
        )

    result = await session.execute(
        select(Exam).where(condition).order_by(Exam.created_at.desc(), Exam.id.desc())
    )
    return result.scalars().all()


async def get_exam(session: AsyncSession, user: Optional[User], exam_id: int) -> Exam:
    """Exam with its questions, if the caller may see it"""
    exam = await get_exam_by_id(session, exam_id, with_questions=True)

    if exam.visibility == ExamVisibility.PUBLIC:
        return exam

    membership = None
    if user is not None:
        membership = await get_active_membership(session, user.id, exam.club_id)
    if not can_view(user, exam, membership):
        raise PermissionDeniedError("view", "exam", "exam is not shared with you")
    return exam


async def update_exam(
    session: AsyncSession, user: User, exam_id: int, exam_update: ExamUpdate
) -> Exam:
    db_exam = await get_exam_by_id(session, exam_id)
    await ensure_can_mutate_exam(session, user, db_exam, "update")

    update_data = exam_update.model_dump(exclude_unset=True)
    for field in ("title", "category", "visibility"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"Exam {field} cannot be null")

    visibility = update_data.get("visibility", db_exam.visibility)
    unit_id = update_data.get("unit_id", db_exam.unit_id)
    if visibility == ExamVisibility.UNIT_PRIVATE and not unit_id:
        raise BusinessLogicError(
            "unit_id is required when visibility is UNIT_PRIVATE",
            rule="unit_required",
            details={"visibility": visibility.value},
        )
    if update_data.get("unit_id"):
        await get_unit_in_club(session, update_data["unit_id"], db_exam.club_id)

    async def _update_exam_operation(session: AsyncSession):
        for key, value in update_data.items():
            setattr(db_exam, key, value)
        return db_exam

    await with_db_transaction(session, _update_exam_operation)
    await session.refresh(db_exam)

    log_business_event(
        "exam_updated",
        "exam",
        exam_id,
        actor_id=user.id,
        details={"fields": sorted(update_data)},
    )
    return db_exam


async def delete_exam(session: AsyncSession, user: User, exam_id: int) -> bool:
    """Delete an exam and its questions"""
    db_exam = await get_exam_by_id(session, exam_id)
    await ensure_can_mutate_exam(session, user, db_exam, "delete")

    async def _delete_exam_operation(session: AsyncSession):
        await session.execute(
            update(Exam)
            .where(Exam.original_exam_id == exam_id)
            .values(original_exam_id=None)
        )
        await session.execute(delete(Question).where(Question.exam_id == exam_id))
        await session.execute(delete(Exam).where(Exam.id == exam_id))

    await with_db_transaction(session, _delete_exam_operation)

    log_business_event("exam_deleted", "exam", exam_id, actor_id=user.id)
    return True
