import logging
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from courseflow.crud.material import material as crud_material
from courseflow.crud.progress import progress as crud_progress
from courseflow.models.material import Material
from courseflow.schemas.material import MaterialDetail
from courseflow.schemas.progress import MaterialCompletion
from courseflow.schemas.user import UserContext
from courseflow.services.enrollment import enrollment_service
from courseflow.services.progress_calculator import clamp_percentage
from courseflow.services.storage import StorageRouter, storage_router
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class CourseProgressService:

    def _get_material_or_404(self, db: Session, material_id: int) -> Material:
        material = crud_material.get(db, id=material_id)
        if not material:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found.")
        return material

    def _detail(self, material: Material, storage: StorageRouter, record=None) -> MaterialDetail:
        detail = MaterialDetail.model_validate(material)
        if material.file_url:
            detail.resolved_url = storage.resolve_url(material.file_url)
        if record is not None:
            detail.is_completed = record.is_completed
            detail.time_spent = record.time_spent
        return detail

    async def view_material(
        self,
        db: Session,
        material_id: int,
        current_user_context: UserContext,
        storage: StorageRouter = storage_router,
    ) -> MaterialDetail:
        material = self._get_material_or_404(db, material_id)

        if permission_helper.can_mutate(current_user_context, material.course):
            return self._detail(material, storage)

        student_id = current_user_context.user.id
        enrollment_service.require_enrollment(db, student_id, material.course_id)

        record = crud_progress.record_view(db, student_id, material.course_id, material.id)
        db.commit()
        db.refresh(record)
        return self._detail(material, storage, record)

    async def complete_material(
        self, db: Session, material_id: int, current_user_context: UserContext
    ) -> MaterialCompletion:
        material = self._get_material_or_404(db, material_id)
        student_id = current_user_context.user.id
        course_id = material.course_id

        enrollment_service.require_enrollment(db, student_id, course_id)

        record = crud_progress.mark_completed(db, student_id, course_id, material.id)
        stats = enrollment_service.recalculate_and_commit(db, student_id, course_id)

        logger.info(
            f"User {student_id} completed material {material.id}: "
            f"{stats.completed_items}/{stats.total_items} items"
        )
        return MaterialCompletion(
            progress_percentage=clamp_percentage(stats.progress_percentage),
            is_completed=record.is_completed,
            total_items=stats.total_items,
            completed_items=stats.completed_items,
        )


course_progress_service = CourseProgressService()
