import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courseflow.core.constants import StorageFolderEnum, SubmissionStatusEnum
from courseflow.crud.assignment import assignment as crud_assignment, assignment_submission as crud_submission
from courseflow.crud.course import course as crud_course
from courseflow.models.assignment import Assignment, AssignmentSubmission
from courseflow.schemas.assignment import (
    AssignmentCreate, AssignmentUpdate, AssignmentWithSubmission, Submission,
    SubmissionCreate, SubmissionGrade, SubmissionResult,
)
from courseflow.schemas.user import UserContext
from courseflow.services.enrollment import enrollment_service
from courseflow.services.progress_calculator import clamp_percentage
from courseflow.services.storage import StorageRouter, storage_router
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AssignmentService:

    def _get_assignment_or_404(self, db: Session, assignment_id: int) -> Assignment:
        assignment = crud_assignment.get(db, id=assignment_id)
        if not assignment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found.")
        return assignment

    async def create_assignment(
        self, db: Session, course_id: int, assignment_in: AssignmentCreate, current_user_context: UserContext
    ) -> Assignment:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_mutation_permission(current_user_context, course)

        assignment = crud_assignment.create(
            db, obj_in=assignment_in, course_id=course_id, creator_id=current_user_context.user.id,
            commit=False,
        )
        enrollment_service.recalculate_course(db, course_id)
        db.refresh(assignment)
        return assignment

    async def update_assignment(
        self, db: Session, assignment_id: int, assignment_in: AssignmentUpdate, current_user_context: UserContext
    ) -> Assignment:
        assignment = self._get_assignment_or_404(db, assignment_id)
        permission_helper.require_course_mutation_permission(current_user_context, assignment.course)
        return crud_assignment.update(db, db_obj=assignment, obj_in=assignment_in)

    async def list_course_assignments(
        self, db: Session, course_id: int, current_user_context: UserContext
    ) -> List[AssignmentWithSubmission]:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_view_permission(current_user_context, course)

        results = []
        for assignment in crud_assignment.get_by_course(db, course_id):
            item = AssignmentWithSubmission.model_validate(assignment)
            item.submission_count = len(assignment.submissions)
            mine = next(
                (s for s in assignment.submissions if s.student_id == current_user_context.user.id), None
            )
            if mine is not None:
                item.my_submission = Submission.model_validate(mine)
            results.append(item)
        return results

    async def delete_assignment(
        self,
        db: Session,
        assignment_id: int,
        current_user_context: UserContext,
        storage: StorageRouter = storage_router,
    ) -> int:
        """Delete the assignment and its submissions. Returns the number of files removed."""
        assignment = self._get_assignment_or_404(db, assignment_id)
        permission_helper.require_course_mutation_permission(current_user_context, assignment.course)

        file_urls = [s.file_url for s in assignment.submissions if s.file_url]
        course_id = assignment.course_id
        student_ids = {s.student_id for s in assignment.submissions}

        crud_assignment.delete(db, id=assignment.id)

        enrollment_service.recalculate_course(db, course_id)

        deleted = sum(1 for url in file_urls if storage.delete(StorageFolderEnum.ASSIGNMENTS.value, url))
        logger.info(
            f"Assignment {assignment_id} deleted with {len(student_ids)} submissions; "
            f"{deleted}/{len(file_urls)} submission files removed"
        )
        return deleted

    async def submit_assignment(
        self, db: Session, assignment_id: int, submission_in: SubmissionCreate, current_user_context: UserContext
    ) -> SubmissionResult:
        assignment = self._get_assignment_or_404(db, assignment_id)
        student_id = current_user_context.user.id

        enrollment_service.require_enrollment(db, student_id, assignment.course_id)

        if crud_submission.get_by_assignment_and_student(db, assignment_id, student_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You have already submitted this assignment."
            )

        if assignment.due_date and datetime.now(timezone.utc) > _as_utc(assignment.due_date):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The due date for this assignment has passed."
            )

        submission = AssignmentSubmission(
            assignment_id=assignment_id,
            student_id=student_id,
            content=submission_in.content,
            file_url=submission_in.file_url,
            status=SubmissionStatusEnum.SUBMITTED,
        )
        db.add(submission)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You have already submitted this assignment."
            )

        stats = enrollment_service.recalculate_and_commit(db, student_id, assignment.course_id)
        db.refresh(submission)
        logger.info(f"User {student_id} submitted assignment {assignment_id}")
        return SubmissionResult(
            submission=Submission.model_validate(submission),
            progress_percentage=clamp_percentage(stats.progress_percentage),
            total_items=stats.total_items,
            completed_items=stats.completed_items,
        )

    async def grade_submission(
        self, db: Session, submission_id: int, grade_in: SubmissionGrade, current_user_context: UserContext
    ) -> AssignmentSubmission:
        submission = crud_submission.get(db, id=submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found.")

        assignment = submission.assignment
        permission_helper.require_course_mutation_permission(current_user_context, assignment.course)

        if grade_in.score > assignment.max_score:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Score cannot exceed the maximum score of {assignment.max_score}."
            )

        submission.score = grade_in.score
        submission.feedback = grade_in.feedback
        submission.status = SubmissionStatusEnum.GRADED
        submission.graded_at = datetime.now(timezone.utc)
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    async def get_my_submission(
        self, db: Session, assignment_id: int, current_user_context: UserContext
    ) -> Optional[AssignmentSubmission]:
        self._get_assignment_or_404(db, assignment_id)
        return crud_submission.get_by_assignment_and_student(db, assignment_id, current_user_context.user.id)


assignment_service = AssignmentService()
