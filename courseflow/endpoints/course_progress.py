from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from courseflow.schemas.material import MaterialDetail
from courseflow.schemas.progress import MaterialCompletion
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.course_progress import course_progress_service
from courseflow.services.storage import StorageRouter
from courseflow.utils import deps

router = APIRouter()


@router.get("/materials/{material_id}", response_model=APIResponse[MaterialDetail])
async def view_material(
    *,
    db: Session = Depends(deps.get_transactional_db),
    material_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    detail = await course_progress_service.view_material(
        db, material_id=material_id, current_user_context=context, storage=storage
    )
    return APIResponse(message="Material retrieved successfully", data=detail)


@router.post("/materials/{material_id}/complete", response_model=APIResponse[MaterialCompletion])
async def complete_material(
    *,
    db: Session = Depends(deps.get_transactional_db),
    material_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = await course_progress_service.complete_material(db, material_id=material_id, current_user_context=context)
    return APIResponse(message="Material marked as completed", data=result)
