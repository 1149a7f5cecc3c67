'''
Pydantic models for teaching materials.
'''
from datetime import datetime
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import MaterialType
from ..core.quran import format_bytes
from .subject import SubjectRead


class MaterialCreate(BaseModel):
    """Links carry an external URL; every other type comes with an uploaded file."""
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    type: MaterialType
    external_url: Optional[str] = Field(None, max_length=500)
    is_public: bool = False
    is_featured: bool = False
    subject_ids: list[UUID] = Field(default_factory=list)
    course_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_link(self):
        if self.type == MaterialType.LINK and not self.external_url:
            raise ValueError("A link needs an external URL.")
        return self


class MaterialUpdate(BaseModel):
    """
    All fields are optional to allow for partial updates (PATCH).
    The type and file are fixed once created; replace the file through its own endpoint.
    """
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    external_url: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None
    is_featured: Optional[bool] = None
    subject_ids: Optional[list[UUID]] = None
    course_ids: Optional[list[UUID]] = None


class CourseLinkRead(BaseModel):
    course_id: UUID
    order: int

    model_config = ConfigDict(from_attributes=True)


class MaterialRead(BaseModel):
    id: UUID
    teacher_profile_id: UUID
    title: str
    description: Optional[str] = None
    type: MaterialType
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    external_url: Optional[str] = None
    is_public: bool
    is_featured: bool
    created_at: datetime
    subjects: list[SubjectRead] = Field(default_factory=list)
    course_links: list[CourseLinkRead] = Field(default_factory=list)
    formatted_size: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode='after')
    def format_size(self):
        if self.file_size:
            self.formatted_size = format_bytes(self.file_size)
        return self


class MaterialFilters(BaseModel):
    search: Optional[str] = None
    type: Optional[MaterialType] = None
    subject_id: Optional[UUID] = None
    course_id: Optional[UUID] = None
    visibility: Optional[Literal['public', 'private']] = None
    page: int = Field(1, ge=1)
