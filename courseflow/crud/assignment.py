from typing import List, Optional
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.models.assignment import Assignment, AssignmentSubmission
from courseflow.schemas.assignment import (
    AssignmentCreate, AssignmentUpdate, SubmissionCreate, SubmissionGrade
)


class CRUDAssignment(CRUDBase[Assignment, AssignmentCreate, AssignmentUpdate]):
    def get_by_course(self, db: Session, course_id: int) -> List[Assignment]:
        return (
            db.query(Assignment)
            .filter(Assignment.course_id == course_id)
            .order_by(Assignment.created_at, Assignment.id)
            .all()
        )


class CRUDAssignmentSubmission(CRUDBase[AssignmentSubmission, SubmissionCreate, SubmissionGrade]):
    def get_by_assignment_and_student(
        self, db: Session, assignment_id: int, student_id: int
    ) -> Optional[AssignmentSubmission]:
        return (
            db.query(AssignmentSubmission)
            .filter(
                AssignmentSubmission.assignment_id == assignment_id,
                AssignmentSubmission.student_id == student_id,
            )
            .first()
        )

    def get_by_course(self, db: Session, course_id: int) -> List[AssignmentSubmission]:
        return (
            db.query(AssignmentSubmission)
            .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
            .filter(Assignment.course_id == course_id)
            .all()
        )

    def get_by_student_and_course(self, db: Session, student_id: int, course_id: int) -> List[AssignmentSubmission]:
        return (
            db.query(AssignmentSubmission)
            .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
            .filter(Assignment.course_id == course_id, AssignmentSubmission.student_id == student_id)
            .all()
        )

assignment = CRUDAssignment(Assignment)
assignment_submission = CRUDAssignmentSubmission(AssignmentSubmission)
