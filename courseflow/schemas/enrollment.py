from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime

from courseflow.core.constants import EnrollmentStatusEnum, MaterialTypeEnum
from courseflow.schemas.course import Course


class Enrollment(BaseModel):
    id: int
    student_id: int
    course_id: int
    status: EnrollmentStatusEnum
    progress_percentage: int
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatusEnum

class EnrollmentWithCourse(Enrollment):
    course: Course
    completed_materials: int = 0
    total_materials: int = 0

class CourseStudent(BaseModel):
    enrollment_id: int
    student_id: int
    full_name: Optional[str] = None
    email: str
    status: EnrollmentStatusEnum
    progress_percentage: int
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_materials: int = 0
    total_time_spent: int = 0
    last_accessed: Optional[datetime] = None

class ProgressStatsSchema(BaseModel):
    total_materials: int
    completed_materials: int
    total_assignments: int
    submitted_assignments: int
    total_items: int
    completed_items: int
    progress_percentage: int

class MaterialProgressEntry(BaseModel):
    material_id: int
    title: str
    type: MaterialTypeEnum
    module_id: Optional[int] = None
    order_index: int
    is_completed: bool = False
    time_spent: int = 0
    last_accessed: Optional[datetime] = None

class EnrollmentProgress(BaseModel):
    enrollment: Enrollment
    stats: ProgressStatsSchema
    materials: List[MaterialProgressEntry]
    submitted_assignment_ids: List[int] = []
    total_time_spent: int = 0
