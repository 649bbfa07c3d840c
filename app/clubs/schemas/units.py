from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UnitCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    club_id: int = Field(..., gt=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class UnitUpdate(BaseModel):
    """``club_id`` is accepted only to reject attempts to move a unit"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    club_id: Optional[int] = Field(None, gt=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class UnitRead(BaseModel):
    id: int
    name: str
    club_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
