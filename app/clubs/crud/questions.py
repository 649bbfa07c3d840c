"""
Exam questions.

Orderings of an exam are always exactly 1..N: every write loads the exam's
questions, renumbers them in memory and commits them in one transaction.
"""
from typing import List

from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation, with_db_transaction
from app.core.exceptions import BusinessLogicError, NotFoundError, ValidationError
from app.core.logging_utils import log_business_event
from app.clubs.crud.exams import (
    ensure_can_mutate_exam,
    get_exam_by_id,
    get_exam_questions,
)
from app.clubs.models.questions import Question
from app.clubs.models.users import User
from app.clubs.schemas.exams import (
    QuestionCreate,
    QuestionUpdate,
    ensure_question_options,
)


@db_operation
async def get_question_by_id(session: AsyncSession, question_id: int) -> Question:
    if not question_id or question_id <= 0:
        raise ValidationError("Question ID must be positive")

    result = await session.execute(select(Question).where(Question.id == question_id))
    question = result.scalar_one_or_none()

    if not question:
        raise NotFoundError("Question", str(question_id))

    return question


def _renumber(questions: List[Question]) -> None:
    for position, question in enumerate(questions, start=1):
        if question.ordering != position:
            question.ordering = position


def _check_position(position: int, upper: int) -> None:
    if position < 1 or position > upper:
        raise BusinessLogicError(
            f"Ordering must be between 1 and {upper}",
            rule="ordering_out_of_range",
            details={"ordering": position, "max": upper},
        )


async def add_question(
    session: AsyncSession, user: User, exam_id: int, question: QuestionCreate
) -> Question:
    """Insert a question at ``ordering`` (appended when omitted)"""
    exam = await get_exam_by_id(session, exam_id)
    await ensure_can_mutate_exam(session, user, exam, "add questions to")

    questions = list(await get_exam_questions(session, exam.id))
    position = question.ordering or len(questions) + 1
    _check_position(position, len(questions) + 1)

    async def _add_question_operation(session: AsyncSession):
        db_question = Question(
            exam_id=exam.id,
            type=question.type,
            statement=question.statement,
            options=question.options,
            correct_answer=question.correct_answer,
            points=question.points,
            ordering=position,
        )
        questions.insert(position - 1, db_question)
        _renumber(questions)
        session.add(db_question)
        await session.flush()
        return db_question

    db_question = await with_db_transaction(session, _add_question_operation)
    await session.refresh(db_question)

    log_business_event(
        "question_added",
        "question",
        db_question.id,
        actor_id=user.id,
        details={"exam_id": exam.id, "ordering": position},
    )
    return db_question


async def update_question(
    session: AsyncSession, user: User, question_id: int, question_update: QuestionUpdate
) -> Question:
    db_question = await get_question_by_id(session, question_id)
    exam = await get_exam_by_id(session, db_question.exam_id)
    await ensure_can_mutate_exam(session, user, exam, "update questions of")

    update_data = question_update.model_dump(exclude_unset=True)
    for field in ("type", "statement", "points"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"Question {field} cannot be null")
    ensure_question_options(
        update_data.get("type", db_question.type),
        update_data.get("options", db_question.options),
    )

    new_position = update_data.pop("ordering", None)
    questions = list(await get_exam_questions(session, exam.id))
    if new_position is not None:
        _check_position(new_position, len(questions))

    async def _update_question_operation(session: AsyncSession):
        for key, value in update_data.items():
            setattr(db_question, key, value)
        if new_position is not None:
            questions.remove(db_question)
            questions.insert(new_position - 1, db_question)
            _renumber(questions)
        return db_question

    await with_db_transaction(session, _update_question_operation)
    await session.refresh(db_question)

    log_business_event(
        "question_updated",
        "question",
        question_id,
        actor_id=user.id,
        details={"exam_id": exam.id, "fields": sorted(question_update.model_fields_set)},
    )
    return db_question


async def delete_question(session: AsyncSession, user: User, question_id: int) -> bool:
    """Delete a question and close the gap it leaves in the ordering"""
    db_question = await get_question_by_id(session, question_id)
    exam = await get_exam_by_id(session, db_question.exam_id)
    await ensure_can_mutate_exam(session, user, exam, "delete questions of")

    questions = list(await get_exam_questions(session, exam.id))

    async def _delete_question_operation(session: AsyncSession):
        questions.remove(db_question)
        await session.delete(db_question)
        await session.flush()
        _renumber(questions)

    await with_db_transaction(session, _delete_question_operation)

    log_business_event(
        "question_deleted",
        "question",
        question_id,
        actor_id=user.id,
        details={"exam_id": exam.id},
    )
    return True


async def reorder_questions(
    session: AsyncSession, user: User, exam_id: int, question_ids: List[int]
) -> List[Question]:
    """
    Give every question of the exam its 1-based position in ``question_ids``.

    Raises:
        BusinessLogicError: ``question_ids`` is not exactly the exam's question set
    """
    exam = await get_exam_by_id(session, exam_id)
    await ensure_can_mutate_exam(session, user, exam, "reorder questions of")

    questions = await get_exam_questions(session, exam.id)
    if len(question_ids) != len(questions):
        raise BusinessLogicError(
            "The number of ids does not match the number of questions of the exam",
            rule="reorder_mismatch",
            details={"expected": len(questions), "received": len(question_ids)},
        )

    by_id = {question.id: question for question in questions}
    if set(question_ids) != set(by_id):
        raise BusinessLogicError(
            "The ids do not match the questions of the exam",
            rule="reorder_mismatch",
            details={"exam_id": exam.id},
        )

    async def _reorder_operation(session: AsyncSession):
        _renumber([by_id[question_id] for question_id in question_ids])

    await with_db_transaction(session, _reorder_operation)

    log_business_event(
        "questions_reordered",
        "exam",
        exam.id,
        actor_id=user.id,
        details={"order": list(question_ids)},
    )
    return await get_exam_questions(session, exam.id)
