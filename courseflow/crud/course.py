from typing import List
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.core.constants import CourseStatusEnum
from courseflow.models.course import Course
from courseflow.schemas.course import CourseCreate, CourseUpdate


class CRUDCourse(CRUDBase[Course, CourseCreate, CourseUpdate]):
    def get_by_creator(self, db: Session, creator_id: int, skip: int = 0, limit: int = 100) -> List[Course]:
        return (
            db.query(Course)
            .filter(Course.creator_id == creator_id)
            .order_by(Course.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_catalog(self, db: Session, skip: int = 0, limit: int = 100) -> List[Course]:
        return (
            db.query(Course)
            .filter(Course.is_public.is_(True), Course.status == CourseStatusEnum.PUBLISHED)
            .order_by(Course.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

course = CRUDCourse(Course)
