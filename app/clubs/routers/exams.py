from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.dependencies import get_current_user, get_optional_user
from app.clubs.crud.exams import (
    copy_exam,
    create_exam,
    delete_exam,
    get_exam,
    list_club_exams,
    list_public_exams,
    update_exam,
)
from app.clubs.crud.questions import (
    add_question,
    delete_question,
    reorder_questions,
    update_question,
)
from app.clubs.models.users import User
from app.clubs.schemas.exams import (
    ExamCopy,
    ExamCreate,
    ExamDetail,
    ExamRead,
    ExamUpdate,
    QuestionCreate,
    QuestionRead,
    QuestionReorder,
    QuestionUpdate,
)

router = APIRouter(prefix="/exams", tags=["Exams"])


@router.post("/", response_model=ExamRead, status_code=status.HTTP_201_CREATED)
async def create_new_exam(
    exam: ExamCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Create an exam in the caller's club.

    - **visibility**: PUBLIC, CLUB_PRIVATE (default) or UNIT_PRIVATE
    - **unit_id**: Required for UNIT_PRIVATE, must belong to the club
    - **club_id**: Optional target club, MASTER can use any club
    """
    return await create_exam(db, current_user, exam)


@router.get("/public", response_model=List[ExamRead])
async def get_public_library(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Public exam library, newest first"""
    return await list_public_exams(db, skip=skip, limit=limit)


@router.get("/club", response_model=List[ExamRead])
async def get_club_exams(
    club_id: Optional[int] = Query(None, gt=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Exams of the caller's club; DESBRAVADOR members only see what is shared with them"""
    return await list_club_exams(db, current_user, club_id)


@router.get("/{exam_id}", response_model=ExamDetail)
async def get_exam_details(
    exam_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Exam with its questions; correct answers are not included. PUBLIC exams need no token"""
    return await get_exam(db, current_user, exam_id)


@router.patch("/{exam_id}", response_model=ExamRead)
async def update_exam_details(
    exam_id: int,
    exam_update: ExamUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await update_exam(db, current_user, exam_id, exam_update)


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam_endpoint(
    exam_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await delete_exam(db, current_user, exam_id)


@router.post(
    "/{exam_id}/copy", response_model=ExamRead, status_code=status.HTTP_201_CREATED
)
async def copy_public_exam(
    exam_id: int,
    data: Optional[ExamCopy] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Copy a PUBLIC exam into the caller's club as CLUB_PRIVATE"""
    target_club_id = data.target_club_id if data else None
    return await copy_exam(db, current_user, exam_id, target_club_id)


@router.post(
    "/{exam_id}/questions",
    response_model=QuestionRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_exam_question(
    exam_id: int,
    question: QuestionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await add_question(db, current_user, exam_id, question)


@router.put("/{exam_id}/questions/order", response_model=List[QuestionRead])
async def reorder_exam_questions(
    exam_id: int,
    data: QuestionReorder,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Reorder questions; the ids must be exactly the exam's questions"""
    return await reorder_questions(db, current_user, exam_id, data.question_ids)


@router.patch("/questions/{question_id}", response_model=QuestionRead)
async def update_exam_question(
    question_id: int,
    question_update: QuestionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await update_question(db, current_user, question_id, question_update)


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam_question(
    question_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await delete_question(db, current_user, question_id)
