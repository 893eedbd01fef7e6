from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from courseflow.core.constants import SubmissionStatusEnum


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: int = Field(100, gt=0)

class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: Optional[int] = Field(None, gt=0)

class SubmissionCreate(BaseModel):
    content: str = ""
    file_url: Optional[str] = None

class SubmissionGrade(BaseModel):
    score: float = Field(..., ge=0)
    feedback: Optional[str] = None

class Submission(BaseModel):
    id: int
    assignment_id: int
    student_id: int
    content: str
    file_url: Optional[str] = None
    status: SubmissionStatusEnum
    score: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Assignment(BaseModel):
    id: int
    course_id: int
    creator_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AssignmentWithSubmission(Assignment):
    my_submission: Optional[Submission] = None
    submission_count: int = 0

class SubmissionResult(BaseModel):
    submission: Submission
    progress_percentage: int
    total_items: int
    completed_items: int
