from typing import Optional
from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

from courseflow.schemas.response import APIResponse
from courseflow.schemas.upload import UploadResult
from courseflow.schemas.user import UserContext
from courseflow.services.storage import StorageRouter
from courseflow.services.upload import upload_service
from courseflow.utils import deps

router = APIRouter()


@router.post("/material", response_model=APIResponse[UploadResult], status_code=status.HTTP_201_CREATED)
async def upload_material(
    request: Request,
    file: UploadFile = File(...),
    course_id: Optional[int] = None,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    result = await upload_service.upload_material(
        db, file, context, course_id=course_id, request=request, storage=storage
    )
    return APIResponse(message="File uploaded successfully", data=result)


@router.post("/thumbnail", response_model=APIResponse[UploadResult], status_code=status.HTTP_201_CREATED)
async def upload_course_thumbnail(
    request: Request,
    file: UploadFile = File(...),
    course_id: Optional[int] = None,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    result = await upload_service.upload_course_thumbnail(
        db, file, context, course_id=course_id, request=request, storage=storage
    )
    return APIResponse(message="Thumbnail uploaded successfully", data=result)


@router.post("/avatar", response_model=APIResponse[UploadResult], status_code=status.HTTP_201_CREATED)
async def upload_avatar(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    result = await upload_service.upload_avatar(db, file, context, request=request, storage=storage)
    return APIResponse(message="Avatar updated successfully", data=result)


@router.post("/assignment", response_model=APIResponse[UploadResult], status_code=status.HTTP_201_CREATED)
async def upload_assignment_file(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    result = await upload_service.upload_assignment_file(db, file, context, request=request, storage=storage)
    return APIResponse(message="File uploaded successfully", data=result)
