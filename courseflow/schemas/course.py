from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from courseflow.core.constants import CourseStatusEnum


class CourseBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_public: bool = False

class CourseCreate(CourseBase):
    pass

class CourseUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator("title")
    def title_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v

class CourseReject(BaseModel):
    reason: Optional[str] = None

class Course(CourseBase):
    id: int
    status: CourseStatusEnum
    creator_id: int
    thumbnail: Optional[str] = None
    price: int = 0
    total_enrolled_students: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CourseDeletionSummary(BaseModel):
    course_title: str
    deleted_materials: int
    deleted_submissions: int
    thumbnail_deleted: bool
    failed_file_deletes: int = 0
