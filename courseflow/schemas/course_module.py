from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class CourseModuleCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)

class CourseModuleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

class CourseModuleReorder(BaseModel):
    order_index: int = Field(..., ge=0)

class CourseModule(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    order_index: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
