from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.exceptions import ValidationError
from app.clubs.models.enums import ClubRole, MembershipStatus


class MembershipRequestCreate(BaseModel):
    """Join request filed by the applicant"""

    club_id: int = Field(..., gt=0)
    desired_role: ClubRole
    unit_id: Optional[int] = Field(
        None, gt=0, description="Required for CONSELHEIRO, INSTRUTOR and DESBRAVADOR"
    )
    birth_date: date
    baptized: bool
    specific_office: Optional[str] = Field(
        None, min_length=2, max_length=50, description="e.g. Diretor, Secretário"
    )

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v):
        if v.year < 1900:
            raise ValidationError("Birth date is out of range")
        return v


class MembershipApprove(BaseModel):
    """Final role chosen by the approver, may differ from the requested one"""

    role: ClubRole
    unit_id: Optional[int] = Field(None, gt=0)
    specific_office: Optional[str] = Field(None, min_length=2, max_length=50)

    model_config = ConfigDict(str_strip_whitespace=True)


class MembershipUpdate(BaseModel):
    unit_id: Optional[int] = Field(None, gt=0)
    specific_office: Optional[str] = Field(None, min_length=2, max_length=50)

    model_config = ConfigDict(str_strip_whitespace=True)


class MembershipRead(BaseModel):
    id: int
    user_id: int
    club_id: int
    unit_id: Optional[int] = None
    role: ClubRole
    status: MembershipStatus
    birth_date: date
    baptized: bool
    specific_office: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MembershipRequestResponse(BaseModel):
    membership: MembershipRead
    message: Optional[str] = Field(
        None, description="Present when the requested role was adjusted"
    )
