import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courseflow.core.constants import EnrollmentStatusEnum
from courseflow.crud.course import course as crud_course
from courseflow.crud.enrollment import enrollment as crud_enrollment
from courseflow.crud.material import material as crud_material
from courseflow.crud.progress import progress as crud_progress
from courseflow.crud.assignment import assignment_submission as crud_submission
from courseflow.models.enrollment import Enrollment
from courseflow.schemas.enrollment import (
    CourseStudent, Enrollment as EnrollmentSchema, EnrollmentProgress, EnrollmentWithCourse,
    MaterialProgressEntry,
)
from courseflow.schemas.user import UserContext
from courseflow.services.progress_calculator import (
    ProgressStats, calculate_course_progress, clamp_percentage
)
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class EnrollmentService:

    def _get_course_or_404(self, db: Session, course_id: int):
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        return course

    def _get_enrollment_or_404(self, db: Session, enrollment_id: int) -> Enrollment:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found.")
        return enrollment

    def require_enrollment(self, db: Session, student_id: int, course_id: int) -> Enrollment:
        enrollment = crud_enrollment.get_by_student_and_course(db, student_id=student_id, course_id=course_id)
        if not enrollment:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not enrolled in this course."
            )
        return enrollment

    @staticmethod
    def _mark_completed(enrollment: Enrollment):
        enrollment.status = EnrollmentStatusEnum.COMPLETED
        if enrollment.completed_at is None:
            enrollment.completed_at = datetime.now(timezone.utc)

    def recalculate_and_commit(
        self, db: Session, student_id: int, course_id: int, commit: bool = True
    ) -> ProgressStats:
        """Recompute the student's progress and persist it on the enrollment.

        The enrollment row is locked before counting so two triggers for the
        same student and course cannot both miss the transition to COMPLETED.
        """
        enrollment = crud_enrollment.get_by_student_and_course(
            db, student_id=student_id, course_id=course_id, for_update=True
        )
        if not enrollment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found.")

        stats = calculate_course_progress(db, student_id, course_id)
        percentage = clamp_percentage(stats.progress_percentage)
        enrollment.progress_percentage = percentage

        if percentage == 100 and enrollment.completed_at is None:
            self._mark_completed(enrollment)
            logger.info(f"Enrollment {enrollment.id} completed (student {student_id}, course {course_id})")

        db.add(enrollment)
        if commit:
            db.commit()
        else:
            db.flush()
        return stats

    def recalculate_course(self, db: Session, course_id: int):
        """Refresh every enrollment of a course after its materials or assignments changed."""
        for enrollment in crud_enrollment.get_by_course(db, course_id=course_id, limit=None):
            self.recalculate_and_commit(db, enrollment.student_id, course_id, commit=False)
        db.commit()

    async def enroll(self, db: Session, course_id: int, current_user_context: UserContext) -> Enrollment:
        course = self._get_course_or_404(db, course_id)

        if not permission_helper.is_catalog_visible(course):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Course is not open for enrollment."
            )

        student_id = current_user_context.user.id
        if crud_enrollment.get_by_student_and_course(db, student_id=student_id, course_id=course_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You are already enrolled in this course."
            )

        enrollment = Enrollment(
            student_id=student_id,
            course_id=course_id,
            status=EnrollmentStatusEnum.ACTIVE,
            progress_percentage=0,
        )
        db.add(enrollment)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You are already enrolled in this course."
            )
        db.refresh(enrollment)
        logger.info(f"User {student_id} enrolled in course {course_id}")
        return enrollment

    async def get_my_enrollments(
        self, db: Session, current_user_context: UserContext, skip: int = 0, limit: int = 100
    ) -> List[EnrollmentWithCourse]:
        enrollments = crud_enrollment.get_by_student(db, student_id=current_user_context.user.id, skip=skip, limit=limit)
        results = []
        for enrollment in enrollments:
            stats = calculate_course_progress(db, enrollment.student_id, enrollment.course_id)
            item = EnrollmentWithCourse.model_validate(enrollment)
            item.progress_percentage = clamp_percentage(enrollment.progress_percentage)
            item.completed_materials = stats.completed_materials
            item.total_materials = stats.total_materials
            results.append(item)
        return results

    async def get_course_students(
        self, db: Session, course_id: int, current_user_context: UserContext, skip: int = 0, limit: int = 100
    ) -> List[CourseStudent]:
        course = self._get_course_or_404(db, course_id)
        permission_helper.require_course_mutation_permission(current_user_context, course)

        material_ids = crud_material.get_ids_by_course(db, course_id)
        activity = crud_progress.activity_by_course(db, course_id, material_ids)

        students = []
        for enrollment in crud_enrollment.get_by_course(db, course_id=course_id, skip=skip, limit=limit):
            completed, time_spent, last_accessed = activity.get(enrollment.student_id, (0, 0, None))
            students.append(CourseStudent(
                enrollment_id=enrollment.id,
                student_id=enrollment.student_id,
                full_name=enrollment.student.full_name,
                email=enrollment.student.email,
                status=enrollment.status,
                progress_percentage=clamp_percentage(enrollment.progress_percentage),
                enrolled_at=enrollment.enrolled_at,
                completed_at=enrollment.completed_at,
                completed_materials=completed,
                total_time_spent=time_spent,
                last_accessed=last_accessed,
            ))
        return students

    async def get_enrollment_progress(
        self, db: Session, course_id: int, current_user_context: UserContext
    ) -> EnrollmentProgress:
        student_id = current_user_context.user.id
        enrollment = crud_enrollment.get_by_student_and_course(db, student_id=student_id, course_id=course_id)
        if not enrollment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found.")

        records = {
            record.material_id: record
            for record in crud_progress.get_by_student_and_course(db, student_id, course_id)
            if record.material_id is not None
        }
        materials = []
        for material in crud_material.get_by_course(db, course_id):
            record = records.get(material.id)
            materials.append(MaterialProgressEntry(
                material_id=material.id,
                title=material.title,
                type=material.type,
                module_id=material.module_id,
                order_index=material.order_index,
                is_completed=bool(record and record.is_completed),
                time_spent=record.time_spent if record else 0,
                last_accessed=record.last_accessed if record else None,
            ))

        stats = calculate_course_progress(db, student_id, course_id)
        submissions = crud_submission.get_by_student_and_course(db, student_id, course_id)
        return EnrollmentProgress(
            enrollment=EnrollmentSchema.model_validate(enrollment),
            stats={**stats.as_dict(), "progress_percentage": clamp_percentage(stats.progress_percentage)},
            materials=materials,
            submitted_assignment_ids=sorted(s.assignment_id for s in submissions),
            total_time_spent=sum(r.time_spent for r in records.values()),
        )

    async def update_enrollment_status(
        self,
        db: Session,
        enrollment_id: int,
        new_status: EnrollmentStatusEnum,
        current_user_context: UserContext,
    ) -> Optional[Enrollment]:
        """Apply a status change. Cancelling deletes the enrollment and returns None.

        Students may only cancel their own enrollment; any other transition
        needs the course owner or an admin.
        """
        enrollment = self._get_enrollment_or_404(db, enrollment_id)
        permission_helper.require_enrollment_access(current_user_context, enrollment)

        if new_status == EnrollmentStatusEnum.CANCELLED:
            await self.cancel_enrollment(db, enrollment_id, current_user_context)
            return None

        # only cancellation is open to the enrolled student
        permission_helper.require_course_mutation_permission(current_user_context, enrollment.course)

        if enrollment.status == EnrollmentStatusEnum.COMPLETED and new_status == EnrollmentStatusEnum.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A completed enrollment cannot be reopened."
            )

        if new_status == EnrollmentStatusEnum.COMPLETED:
            self._mark_completed(enrollment)
        else:
            enrollment.status = new_status

        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    async def cancel_enrollment(self, db: Session, enrollment_id: int, current_user_context: UserContext):
        enrollment = self._get_enrollment_or_404(db, enrollment_id)
        permission_helper.require_enrollment_access(current_user_context, enrollment)

        # progress history is kept; a re-enrolment picks it back up
        crud_enrollment.delete(db, id=enrollment.id)
        logger.info(
            f"Enrollment {enrollment_id} cancelled by user {current_user_context.user.id}"
        )


enrollment_service = EnrollmentService()
