import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from courseflow.crud.course import course as crud_course
from courseflow.crud.course_module import course_module as crud_module
from courseflow.crud.material import material as crud_material
from courseflow.models.course_module import CourseModule
from courseflow.schemas.course_module import CourseModuleCreate, CourseModuleUpdate
from courseflow.schemas.user import UserContext
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class CourseModuleService:

    def _get_module_or_404(self, db: Session, module_id: int) -> CourseModule:
        module = crud_module.get(db, id=module_id)
        if not module:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Module not found.")
        return module

    async def create_module(
        self, db: Session, course_id: int, module_in: CourseModuleCreate, current_user_context: UserContext
    ) -> CourseModule:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_mutation_permission(current_user_context, course)

        order_index = module_in.order_index
        if order_index is None:
            order_index = crud_module.count_by_course(db, course_id)

        return crud_module.create(
            db,
            obj_in=module_in.model_dump(exclude={"order_index"}),
            course_id=course_id,
            order_index=order_index,
        )

    async def list_modules(self, db: Session, course_id: int, current_user_context: UserContext) -> List[CourseModule]:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_view_permission(current_user_context, course)
        return crud_module.get_by_course(db, course_id)

    async def update_module(
        self, db: Session, module_id: int, module_in: CourseModuleUpdate, current_user_context: UserContext
    ) -> CourseModule:
        module = self._get_module_or_404(db, module_id)
        permission_helper.require_course_mutation_permission(current_user_context, module.course)
        return crud_module.update(db, db_obj=module, obj_in=module_in)

    async def reorder_module(
        self, db: Session, module_id: int, new_order_index: int, current_user_context: UserContext
    ) -> CourseModule:
        module = self._get_module_or_404(db, module_id)
        permission_helper.require_course_mutation_permission(current_user_context, module.course)
        return crud_module.update(db, db_obj=module, obj_in={"order_index": new_order_index})

    async def delete_module(self, db: Session, module_id: int, current_user_context: UserContext):
        module = self._get_module_or_404(db, module_id)
        permission_helper.require_course_mutation_permission(current_user_context, module.course)

        material_count = crud_material.count_by_module(db, module_id)
        if material_count:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Module still contains {material_count} material(s). Remove them first."
            )

        crud_module.delete(db, id=module_id)
        logger.info(f"Module {module_id} deleted by user {current_user_context.user.id}")


course_module_service = CourseModuleService()
