from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.enrollment import (
    CourseStudent, Enrollment, EnrollmentProgress, EnrollmentStatusUpdate, EnrollmentWithCourse
)
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.enrollment import enrollment_service
from courseflow.utils import deps

router = APIRouter()


@router.post("/courses/{course_id}/enroll", response_model=APIResponse[Enrollment], status_code=status.HTTP_201_CREATED)
async def enroll(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = await enrollment_service.enroll(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Enrolled successfully", data=Enrollment.model_validate(enrollment))


@router.get("/enrollments/me", response_model=APIResponse[List[EnrollmentWithCourse]])
async def get_my_enrollments(
    *,
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollments = await enrollment_service.get_my_enrollments(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Enrollments retrieved successfully", data=enrollments)


@router.get("/courses/{course_id}/students", response_model=APIResponse[List[CourseStudent]])
async def get_course_students(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    skip: int = 0,
    limit: int = 100,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    students = await enrollment_service.get_course_students(
        db, course_id=course_id, current_user_context=context, skip=skip, limit=limit
    )
    return APIResponse(message="Students retrieved successfully", data=students)


@router.get("/courses/{course_id}/progress", response_model=APIResponse[EnrollmentProgress])
async def get_enrollment_progress(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    progress = await enrollment_service.get_enrollment_progress(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Progress retrieved successfully", data=progress)


@router.patch("/enrollments/{enrollment_id}/status", response_model=APIResponse[Enrollment])
async def update_enrollment_status(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    status_in: EnrollmentStatusUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = await enrollment_service.update_enrollment_status(
        db, enrollment_id=enrollment_id, new_status=status_in.status, current_user_context=context
    )
    if enrollment is None:
        return APIResponse(message="Enrollment cancelled successfully")
    return APIResponse(message="Enrollment updated successfully", data=Enrollment.model_validate(enrollment))


@router.delete("/enrollments/{enrollment_id}", response_model=APIResponse[None])
async def cancel_enrollment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    await enrollment_service.cancel_enrollment(db, enrollment_id=enrollment_id, current_user_context=context)
    return APIResponse(message="Enrollment cancelled successfully")
