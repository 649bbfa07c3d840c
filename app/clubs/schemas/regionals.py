from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.clubs.models.enums import GlobalRole


class RegionalLinkCreate(BaseModel):
    club_id: int = Field(..., gt=0)


class RegionalLinkRead(BaseModel):
    id: int
    regional_id: int
    club_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegionalUserRead(BaseModel):
    id: int
    name: str
    email: str
    global_role: GlobalRole

    model_config = ConfigDict(from_attributes=True)
