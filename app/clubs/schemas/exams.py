from datetime import datetime
from typing import Dict, List, Optional
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.exceptions import ValidationError
from app.clubs.models.enums import ExamVisibility, QuestionType

# page slug on the MDA wiki, e.g. "Especialidade_de_Primeiros_Socorros/"
REFERENCE_URL_PATTERN = re.compile(r"^[^/].*/$")


def ensure_question_options(
    question_type: Optional[QuestionType], options: Optional[Dict[str, str]]
) -> None:
    if question_type == QuestionType.MULTIPLA_ESCOLHA and not options:
        raise ValidationError(
            "Options are required for multiple choice questions",
            details={"type": question_type.value},
        )


def _validate_reference_url(v: Optional[str]) -> Optional[str]:
    if v and not REFERENCE_URL_PATTERN.match(v):
        raise ValidationError(
            "Reference must be a wiki page path ending with '/' and not starting with '/'"
        )
    return v


class ExamCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=2, max_length=60)
    visibility: ExamVisibility = ExamVisibility.CLUB_PRIVATE
    unit_id: Optional[int] = Field(
        None, gt=0, description="Required when visibility is UNIT_PRIVATE"
    )
    reference_url: Optional[str] = Field(None, max_length=255)
    club_id: Optional[int] = Field(
        None,
        gt=0,
        description="Target club; defaults to the caller's first active membership",
    )

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("reference_url")
    @classmethod
    def validate_reference_url(cls, v):
        return _validate_reference_url(v)


class ExamUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=2, max_length=60)
    visibility: Optional[ExamVisibility] = None
    unit_id: Optional[int] = Field(None, gt=0)
    reference_url: Optional[str] = Field(None, max_length=255)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("reference_url")
    @classmethod
    def validate_reference_url(cls, v):
        return _validate_reference_url(v)


class ExamCopy(BaseModel):
    target_club_id: Optional[int] = Field(
        None,
        gt=0,
        description="Club to copy into; defaults to the caller's first active membership",
    )


class QuestionCreate(BaseModel):
    type: QuestionType
    statement: str = Field(..., min_length=1)
    options: Optional[Dict[str, str]] = Field(
        None, description="Answer options keyed by letter, required for MULTIPLA_ESCOLHA"
    )
    correct_answer: Optional[str] = None
    points: int = Field(1, ge=1)
    ordering: Optional[int] = Field(
        None, ge=1, description="1-based position, appended at the end when omitted"
    )

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="after")
    def validate_options(self):
        ensure_question_options(self.type, self.options)
        return self


class QuestionUpdate(BaseModel):
    type: Optional[QuestionType] = None
    statement: Optional[str] = Field(None, min_length=1)
    options: Optional[Dict[str, str]] = None
    correct_answer: Optional[str] = None
    points: Optional[int] = Field(None, ge=1)
    ordering: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(str_strip_whitespace=True)


class QuestionReorder(BaseModel):
    question_ids: List[int] = Field(
        ..., description="Every question id of the exam, in the new order"
    )


class QuestionPublic(BaseModel):
    """Question as shown to exam takers, without the answer"""

    id: int
    exam_id: int
    type: QuestionType
    statement: str
    options: Optional[Dict[str, str]] = None
    points: int
    ordering: int

    model_config = ConfigDict(from_attributes=True)


class QuestionRead(QuestionPublic):
    correct_answer: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ExamRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: str
    visibility: ExamVisibility
    reference_url: Optional[str] = None
    club_id: int
    unit_id: Optional[int] = None
    creator_id: Optional[int] = None
    original_author_id: Optional[int] = None
    original_exam_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExamDetail(ExamRead):
    questions: List[QuestionPublic] = Field(default_factory=list)
