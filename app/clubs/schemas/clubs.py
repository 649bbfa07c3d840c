from datetime import datetime
from typing import Optional
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.exceptions import ValidationError

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _validate_slug(v: Optional[str]) -> Optional[str]:
    if v is not None and not SLUG_PATTERN.match(v):
        raise ValidationError(
            "Slug may only contain lower-case letters, digits and single dashes"
        )
    return v


class ClubBase(BaseModel):
    """Base club schema with common fields."""

    name: str = Field(
        ..., min_length=3, max_length=100, description="Club name (3-100 characters)"
    )
    slug: Optional[str] = Field(
        None,
        max_length=120,
        description="URL-friendly unique name, generated from the name when omitted",
    )
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=50)
    country: Optional[str] = Field("Brasil", max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValidationError("Club name cannot be empty")
        return v.strip()

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        return _validate_slug(v)


class ClubCreate(ClubBase):
    pass


class ClubUpdate(BaseModel):
    """Schema for updating club details - all fields optional."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=50)
    country: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        return _validate_slug(v)


class ClubRead(BaseModel):
    id: int
    name: str
    slug: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    creator_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClubListResponse(BaseModel):
    """Response schema for paginated club list."""

    clubs: list[ClubRead]
    total: int = Field(..., ge=0, description="Total number of clubs")
    page: int = Field(..., ge=1, description="Current page number")
    size: int = Field(..., ge=1, le=100, description="Number of items per page")
    pages: int = Field(..., ge=0, description="Total number of pages")

    model_config = ConfigDict(from_attributes=True)
