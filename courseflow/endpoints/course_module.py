from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.course_module import (
    CourseModule, CourseModuleCreate, CourseModuleReorder, CourseModuleUpdate
)
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.course_module import course_module_service
from courseflow.utils import deps

router = APIRouter()


@router.post("/courses/{course_id}/modules", response_model=APIResponse[CourseModule], status_code=status.HTTP_201_CREATED)
async def create_module(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    module_in: CourseModuleCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    module = await course_module_service.create_module(db, course_id=course_id, module_in=module_in, current_user_context=context)
    return APIResponse(message="Module created successfully", data=CourseModule.model_validate(module))


@router.get("/courses/{course_id}/modules", response_model=APIResponse[List[CourseModule]])
async def list_modules(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    modules = await course_module_service.list_modules(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Modules retrieved successfully", data=[CourseModule.model_validate(m) for m in modules])


@router.put("/modules/{module_id}", response_model=APIResponse[CourseModule])
async def update_module(
    *,
    db: Session = Depends(deps.get_transactional_db),
    module_id: int,
    module_in: CourseModuleUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    module = await course_module_service.update_module(db, module_id=module_id, module_in=module_in, current_user_context=context)
    return APIResponse(message="Module updated successfully", data=CourseModule.model_validate(module))


@router.patch("/modules/{module_id}/reorder", response_model=APIResponse[CourseModule])
async def reorder_module(
    *,
    db: Session = Depends(deps.get_transactional_db),
    module_id: int,
    reorder_in: CourseModuleReorder,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    module = await course_module_service.reorder_module(
        db, module_id=module_id, new_order_index=reorder_in.order_index, current_user_context=context
    )
    return APIResponse(message="Module reordered successfully", data=CourseModule.model_validate(module))


@router.delete("/modules/{module_id}", response_model=APIResponse[None])
async def delete_module(
    *,
    db: Session = Depends(deps.get_transactional_db),
    module_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    await course_module_service.delete_module(db, module_id=module_id, current_user_context=context)
    return APIResponse(message="Module deleted successfully")
