import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from courseflow.core.constants import CourseStatusEnum, MaterialTypeEnum, StorageFolderEnum
from courseflow.crud.course import course as crud_course
from courseflow.models.course import Course
from courseflow.schemas.course import CourseCreate, CourseDeletionSummary, CourseUpdate
from courseflow.schemas.user import UserContext
from courseflow.services.storage import StorageRouter, storage_router
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class CourseService:

    def _get_course_or_404(self, db: Session, course_id: int) -> Course:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        return course

    def _get_mutable_course(self, db: Session, course_id: int, current_user_context: UserContext) -> Course:
        course = self._get_course_or_404(db, course_id)
        permission_helper.require_course_mutation_permission(current_user_context, course)
        return course

    async def create_course(self, db: Session, course_in: CourseCreate, current_user_context: UserContext) -> Course:
        permission_helper.require_not_student(current_user_context, "Students cannot create courses.")
        course = crud_course.create(
            db,
            obj_in=course_in,
            creator_id=current_user_context.user.id,
            status=CourseStatusEnum.DRAFT,
            price=0,
        )
        logger.info(f"Course {course.id} created by user {current_user_context.user.id}")
        return course

    async def get_course(self, db: Session, course_id: int, current_user_context: UserContext) -> Course:
        course = self._get_course_or_404(db, course_id)
        permission_helper.require_course_view_permission(current_user_context, course)
        return course

    async def list_catalog(self, db: Session, skip: int = 0, limit: int = 100) -> List[Course]:
        return crud_course.get_catalog(db, skip=skip, limit=limit)

    async def list_my_courses(
        self, db: Session, current_user_context: UserContext, skip: int = 0, limit: int = 100
    ) -> List[Course]:
        if permission_helper.is_admin(current_user_context):
            return crud_course.get_multi(db, skip=skip, limit=limit)
        return crud_course.get_by_creator(db, creator_id=current_user_context.user.id, skip=skip, limit=limit)

    async def update_course(
        self, db: Session, course_id: int, course_in: CourseUpdate, current_user_context: UserContext
    ) -> Course:
        course = self._get_mutable_course(db, course_id, current_user_context)
        return crud_course.update(db, db_obj=course, obj_in=course_in)

    def _transition(self, db: Session, course: Course, allowed_from, target: CourseStatusEnum) -> Course:
        if course.status not in allowed_from:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot move a {course.status.value} course to {target.value}."
            )
        course.status = target
        db.add(course)
        db.commit()
        db.refresh(course)
        logger.info(f"Course {course.id} moved to {target.value}")
        return course

    async def submit_for_review(self, db: Session, course_id: int, current_user_context: UserContext) -> Course:
        course = self._get_mutable_course(db, course_id, current_user_context)
        return self._transition(
            db, course, (CourseStatusEnum.DRAFT, CourseStatusEnum.REJECTED), CourseStatusEnum.PENDING_REVIEW
        )

    async def publish_course(self, db: Session, course_id: int, current_user_context: UserContext) -> Course:
        permission_helper.require_admin(current_user_context, "Only administrators can publish courses.")
        course = self._get_course_or_404(db, course_id)
        return self._transition(
            db,
            course,
            (CourseStatusEnum.DRAFT, CourseStatusEnum.PENDING_REVIEW, CourseStatusEnum.ARCHIVED),
            CourseStatusEnum.PUBLISHED,
        )

    async def reject_course(
        self, db: Session, course_id: int, current_user_context: UserContext, reason: Optional[str] = None
    ) -> Course:
        permission_helper.require_admin(current_user_context, "Only administrators can reject courses.")
        course = self._get_course_or_404(db, course_id)
        course = self._transition(db, course, (CourseStatusEnum.PENDING_REVIEW,), CourseStatusEnum.REJECTED)
        if reason:
            logger.info(f"Course {course_id} rejected by user {current_user_context.user.id}: {reason}")
        return course

    async def archive_course(self, db: Session, course_id: int, current_user_context: UserContext) -> Course:
        course = self._get_mutable_course(db, course_id, current_user_context)
        return self._transition(db, course, (CourseStatusEnum.PUBLISHED,), CourseStatusEnum.ARCHIVED)

    async def set_thumbnail(
        self,
        db: Session,
        course_id: int,
        reference: str,
        current_user_context: UserContext,
        storage: StorageRouter = storage_router,
    ) -> Course:
        course = self._get_mutable_course(db, course_id, current_user_context)
        previous = course.thumbnail
        course.thumbnail = reference
        db.add(course)
        db.commit()
        db.refresh(course)

        if previous and previous != reference:
            storage.delete(StorageFolderEnum.IMAGES.value, previous)
        return course

    async def delete_course(
        self,
        db: Session,
        course_id: int,
        current_user_context: UserContext,
        storage: StorageRouter = storage_router,
    ) -> CourseDeletionSummary:
        course = self._get_mutable_course(db, course_id, current_user_context)

        blocking = [e for e in course.enrollments if e.is_blocking_course_deletion]
        if blocking:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Course has {len(blocking)} active enrollment(s) that are not yet completed."
            )

        material_files = [
            m.file_url for m in course.materials
            if m.type != MaterialTypeEnum.LINK and m.file_url
        ]
        submission_files = [
            s.file_url for a in course.assignments for s in a.submissions if s.file_url
        ]
        thumbnail = course.thumbnail
        title = course.title

        db.delete(course)
        db.commit()
        logger.info(f"Course {course_id} deleted by user {current_user_context.user.id}")

        # files are cleaned up after the rows are gone; failures only get logged
        deleted_materials = sum(
            1 for url in material_files if storage.delete(StorageFolderEnum.MATERIALS.value, url)
        )
        deleted_submissions = sum(
            1 for url in submission_files if storage.delete(StorageFolderEnum.ASSIGNMENTS.value, url)
        )
        thumbnail_deleted = storage.delete(StorageFolderEnum.IMAGES.value, thumbnail) if thumbnail else False

        attempted = len(material_files) + len(submission_files) + (1 if thumbnail else 0)
        succeeded = deleted_materials + deleted_submissions + (1 if thumbnail_deleted else 0)
        if succeeded < attempted:
            logger.warning(f"Course {course_id}: {attempted - succeeded} of {attempted} file deletions failed")

        return CourseDeletionSummary(
            course_title=title,
            deleted_materials=deleted_materials,
            deleted_submissions=deleted_submissions,
            thumbnail_deleted=thumbnail_deleted,
            failed_file_deletes=attempted - succeeded,
        )


course_service = CourseService()
