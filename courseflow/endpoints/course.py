from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.course import Course, CourseCreate, CourseDeletionSummary, CourseReject, CourseUpdate
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.course import course_service
from courseflow.services.storage import StorageRouter
from courseflow.utils import deps

router = APIRouter()


@router.post("/", response_model=APIResponse[Course], status_code=status.HTTP_201_CREATED)
async def create_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_in: CourseCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.create_course(db, course_in=course_in, current_user_context=context)
    return APIResponse(message="Course created successfully", data=Course.model_validate(course))


@router.get("/", response_model=APIResponse[List[Course]])
async def list_catalog(
    *,
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    courses = await course_service.list_catalog(db, skip=skip, limit=limit)
    return APIResponse(message="Courses retrieved successfully", data=[Course.model_validate(c) for c in courses])


@router.get("/mine", response_model=APIResponse[List[Course]])
async def list_my_courses(
    *,
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    courses = await course_service.list_my_courses(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Courses retrieved successfully", data=[Course.model_validate(c) for c in courses])


@router.get("/{course_id}", response_model=APIResponse[Course])
async def get_course(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.get_course(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Course retrieved successfully", data=Course.model_validate(course))


@router.put("/{course_id}", response_model=APIResponse[Course])
async def update_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    course_in: CourseUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.update_course(db, course_id=course_id, course_in=course_in, current_user_context=context)
    return APIResponse(message="Course updated successfully", data=Course.model_validate(course))


@router.post("/{course_id}/submit-for-review", response_model=APIResponse[Course])
async def submit_for_review(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.submit_for_review(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Course submitted for review", data=Course.model_validate(course))


@router.post("/{course_id}/publish", response_model=APIResponse[Course])
async def publish_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.publish_course(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Course published successfully", data=Course.model_validate(course))


@router.post("/{course_id}/reject", response_model=APIResponse[Course])
async def reject_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    reject_in: Optional[CourseReject] = None,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.reject_course(
        db, course_id=course_id, current_user_context=context, reason=reject_in.reason if reject_in else None
    )
    return APIResponse(message="Course rejected", data=Course.model_validate(course))


@router.post("/{course_id}/archive", response_model=APIResponse[Course])
async def archive_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = await course_service.archive_course(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Course archived", data=Course.model_validate(course))


@router.delete("/{course_id}", response_model=APIResponse[CourseDeletionSummary])
async def delete_course(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    summary = await course_service.delete_course(db, course_id=course_id, current_user_context=context, storage=storage)
    return APIResponse(message="Course deleted successfully", data=summary)
