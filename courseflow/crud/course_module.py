from typing import List
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.models.course_module import CourseModule
from courseflow.schemas.course_module import CourseModuleCreate, CourseModuleUpdate


class CRUDCourseModule(CRUDBase[CourseModule, CourseModuleCreate, CourseModuleUpdate]):
    def get_by_course(self, db: Session, course_id: int) -> List[CourseModule]:
        return (
            db.query(CourseModule)
            .filter(CourseModule.course_id == course_id)
            .order_by(CourseModule.order_index, CourseModule.created_at, CourseModule.id)
            .all()
        )

    def count_by_course(self, db: Session, course_id: int) -> int:
        return db.query(CourseModule).filter(CourseModule.course_id == course_id).count()

course_module = CRUDCourseModule(CourseModule)
