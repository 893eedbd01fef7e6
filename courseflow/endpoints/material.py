from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.material import Material, MaterialCreate, MaterialUpdate
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.material import material_service
from courseflow.services.storage import StorageRouter
from courseflow.utils import deps

router = APIRouter()


@router.post("/courses/{course_id}/materials", response_model=APIResponse[Material], status_code=status.HTTP_201_CREATED)
async def create_material(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    material_in: MaterialCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    material = await material_service.create_material(db, course_id=course_id, material_in=material_in, current_user_context=context)
    return APIResponse(message="Material created successfully", data=Material.model_validate(material))


@router.get("/courses/{course_id}/materials", response_model=APIResponse[List[Material]])
async def list_materials(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    materials = await material_service.list_materials(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Materials retrieved successfully", data=[Material.model_validate(m) for m in materials])


@router.put("/materials/{material_id}", response_model=APIResponse[Material])
async def update_material(
    *,
    db: Session = Depends(deps.get_transactional_db),
    material_id: int,
    material_in: MaterialUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    material = await material_service.update_material(db, material_id=material_id, material_in=material_in, current_user_context=context)
    return APIResponse(message="Material updated successfully", data=Material.model_validate(material))


@router.delete("/materials/{material_id}", response_model=APIResponse[dict])
async def delete_material(
    *,
    db: Session = Depends(deps.get_transactional_db),
    material_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    file_deleted = await material_service.delete_material(
        db, material_id=material_id, current_user_context=context, storage=storage
    )
    return APIResponse(message="Material deleted successfully", data={"file_deleted": file_deleted})
