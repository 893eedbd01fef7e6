from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.assignment import (
    Assignment, AssignmentCreate, AssignmentUpdate, AssignmentWithSubmission,
    Submission, SubmissionCreate, SubmissionGrade, SubmissionResult,
)
from courseflow.schemas.response import APIResponse
from courseflow.schemas.user import UserContext
from courseflow.services.assignment import assignment_service
from courseflow.services.storage import StorageRouter
from courseflow.utils import deps

router = APIRouter()


@router.post("/courses/{course_id}/assignments", response_model=APIResponse[Assignment], status_code=status.HTTP_201_CREATED)
async def create_assignment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    course_id: int,
    assignment_in: AssignmentCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    assignment = await assignment_service.create_assignment(
        db, course_id=course_id, assignment_in=assignment_in, current_user_context=context
    )
    return APIResponse(message="Assignment created successfully", data=Assignment.model_validate(assignment))


@router.get("/courses/{course_id}/assignments", response_model=APIResponse[List[AssignmentWithSubmission]])
async def list_course_assignments(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    assignments = await assignment_service.list_course_assignments(db, course_id=course_id, current_user_context=context)
    return APIResponse(message="Assignments retrieved successfully", data=assignments)


@router.put("/assignments/{assignment_id}", response_model=APIResponse[Assignment])
async def update_assignment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    assignment_id: int,
    assignment_in: AssignmentUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    assignment = await assignment_service.update_assignment(
        db, assignment_id=assignment_id, assignment_in=assignment_in, current_user_context=context
    )
    return APIResponse(message="Assignment updated successfully", data=Assignment.model_validate(assignment))


@router.delete("/assignments/{assignment_id}", response_model=APIResponse[dict])
async def delete_assignment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    assignment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context),
    storage: StorageRouter = Depends(deps.get_storage_router)
):
    deleted_files = await assignment_service.delete_assignment(
        db, assignment_id=assignment_id, current_user_context=context, storage=storage
    )
    return APIResponse(message="Assignment deleted successfully", data={"deleted_files": deleted_files})


@router.post("/assignments/{assignment_id}/submit", response_model=APIResponse[SubmissionResult], status_code=status.HTTP_201_CREATED)
async def submit_assignment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    assignment_id: int,
    submission_in: SubmissionCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = await assignment_service.submit_assignment(
        db, assignment_id=assignment_id, submission_in=submission_in, current_user_context=context
    )
    return APIResponse(message="Assignment submitted successfully", data=result)


@router.get("/assignments/{assignment_id}/my-submission", response_model=APIResponse[Optional[Submission]])
async def get_my_submission(
    *,
    db: Session = Depends(deps.get_db),
    assignment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    submission = await assignment_service.get_my_submission(db, assignment_id=assignment_id, current_user_context=context)
    data = Submission.model_validate(submission) if submission else None
    return APIResponse(message="Submission retrieved successfully", data=data)


@router.post("/submissions/{submission_id}/grade", response_model=APIResponse[Submission])
async def grade_submission(
    *,
    db: Session = Depends(deps.get_transactional_db),
    submission_id: int,
    grade_in: SubmissionGrade,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    submission = await assignment_service.grade_submission(
        db, submission_id=submission_id, grade_in=grade_in, current_user_context=context
    )
    return APIResponse(message="Submission graded successfully", data=Submission.model_validate(submission))
