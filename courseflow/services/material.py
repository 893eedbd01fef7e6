import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from courseflow.core.constants import MaterialTypeEnum, StorageFolderEnum
from courseflow.crud.course import course as crud_course
from courseflow.crud.course_module import course_module as crud_module
from courseflow.crud.material import material as crud_material
from courseflow.crud.progress import progress as crud_progress
from courseflow.models.material import Material
from courseflow.schemas.material import MaterialCreate, MaterialUpdate
from courseflow.schemas.user import UserContext
from courseflow.services.enrollment import enrollment_service
from courseflow.services.storage import StorageRouter, storage_router
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class MaterialService:

    def _get_material_or_404(self, db: Session, material_id: int) -> Material:
        material = crud_material.get(db, id=material_id)
        if not material:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found.")
        return material

    def _validate_module(self, db: Session, course_id: int, module_id: Optional[int]):
        if module_id is None:
            return
        module = crud_module.get(db, id=module_id)
        if not module or module.course_id != course_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Module does not belong to this course."
            )

    @staticmethod
    def _validate_link(material_type: MaterialTypeEnum, file_url: Optional[str]):
        if material_type == MaterialTypeEnum.LINK and not (file_url and file_url.strip()):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A LINK material requires a non-empty file_url."
            )

    async def create_material(
        self, db: Session, course_id: int, material_in: MaterialCreate, current_user_context: UserContext
    ) -> Material:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_mutation_permission(current_user_context, course)

        self._validate_link(material_in.type, material_in.file_url)
        self._validate_module(db, course_id, material_in.module_id)

        material = crud_material.create(
            db, obj_in=material_in, course_id=course_id, author_id=current_user_context.user.id, commit=False
        )
        enrollment_service.recalculate_course(db, course_id)
        db.refresh(material)
        return material

    async def update_material(
        self, db: Session, material_id: int, material_in: MaterialUpdate, current_user_context: UserContext
    ) -> Material:
        material = self._get_material_or_404(db, material_id)
        permission_helper.require_course_mutation_permission(current_user_context, material.course)

        changes = material_in.model_dump(exclude_unset=True)
        self._validate_link(
            changes.get("type", material.type),
            changes["file_url"] if "file_url" in changes else material.file_url,
        )
        if "module_id" in changes:
            self._validate_module(db, material.course_id, changes["module_id"])

        return crud_material.update(db, db_obj=material, obj_in=changes)

    async def list_materials(self, db: Session, course_id: int, current_user_context: UserContext) -> List[Material]:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_view_permission(current_user_context, course)
        return crud_material.get_by_course(db, course_id)

    async def delete_material(
        self,
        db: Session,
        material_id: int,
        current_user_context: UserContext,
        storage: StorageRouter = storage_router,
    ) -> bool:
        """Delete the material row. Returns whether its stored file was removed too."""
        material = self._get_material_or_404(db, material_id)
        permission_helper.require_course_mutation_permission(current_user_context, material.course)

        file_deleted = False
        if material.has_stored_file:
            file_deleted = storage.delete(StorageFolderEnum.MATERIALS.value, material.file_url)
            if not file_deleted:
                logger.warning(f"File for material {material_id} could not be deleted: {material.file_url}")

        course_id = material.course_id
        crud_progress.detach_material(db, material_id)
        crud_material.delete(db, id=material_id, commit=False)
        enrollment_service.recalculate_course(db, course_id)
        logger.info(f"Material {material_id} deleted by user {current_user_context.user.id}")
        return file_deleted


material_service = MaterialService()
