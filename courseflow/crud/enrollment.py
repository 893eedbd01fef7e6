from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from courseflow.crud.base import CRUDBase
from courseflow.models.enrollment import Enrollment
from pydantic import BaseModel


class CRUDEnrollment(CRUDBase[Enrollment, BaseModel, BaseModel]):

    def get_by_student_and_course(
        self, db: Session, student_id: int, course_id: int, *, for_update: bool = False
    ) -> Optional[Enrollment]:
        query = db.query(Enrollment).filter(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_student(self, db: Session, student_id: int, skip: int = 0, limit: int = 100) -> List[Enrollment]:
        return (
            db.query(Enrollment)
            .options(selectinload(Enrollment.course))
            .filter(Enrollment.student_id == student_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_course(self, db: Session, course_id: int, skip: int = 0, limit: int = 100) -> List[Enrollment]:
        return (
            db.query(Enrollment)
            .options(selectinload(Enrollment.student))
            .filter(Enrollment.course_id == course_id)
            .order_by(Enrollment.enrolled_at, Enrollment.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

enrollment = CRUDEnrollment(Enrollment)
