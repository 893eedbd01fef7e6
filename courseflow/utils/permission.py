from fastapi import HTTPException, status

from courseflow.models.course import Course
from courseflow.models.enrollment import Enrollment
from courseflow.schemas.user import UserContext
from courseflow.core.constants import RoleEnum, CourseStatusEnum


class PermissionHelper:
    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return context.role == RoleEnum.ADMIN

    @staticmethod
    def is_tutor(context: UserContext) -> bool:
        return context.role == RoleEnum.TUTOR

    @staticmethod
    def is_student(context: UserContext) -> bool:
        return context.role == RoleEnum.STUDENT

    @staticmethod
    def is_course_owner(context: UserContext, course: Course) -> bool:
        return course.creator_id == context.user.id

    @staticmethod
    def is_enrolled(context: UserContext, course: Course) -> bool:
        return any(e.student_id == context.user.id for e in course.enrollments)

    @staticmethod
    def is_catalog_visible(course: Course) -> bool:
        return bool(course.is_public) and course.status == CourseStatusEnum.PUBLISHED

    @staticmethod
    def can_mutate(context: UserContext, course: Course) -> bool:
        if PermissionHelper.is_admin(context):
            return True
        return PermissionHelper.is_course_owner(context, course)

    @staticmethod
    def can_view(context: UserContext, course: Course) -> bool:
        if PermissionHelper.can_mutate(context, course):
            return True
        if PermissionHelper.is_catalog_visible(course):
            return True
        return PermissionHelper.is_enrolled(context, course)

    @staticmethod
    def can_access_enrollment(context: UserContext, enrollment: Enrollment) -> bool:
        if PermissionHelper.is_admin(context):
            return True
        if enrollment.student_id == context.user.id:
            return True
        return PermissionHelper.is_course_owner(context, enrollment.course)

    @staticmethod
    def require_course_mutation_permission(context: UserContext, course: Course):
        if not PermissionHelper.can_mutate(context, course):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this course."
            )

    @staticmethod
    def require_course_view_permission(context: UserContext, course: Course):
        if not PermissionHelper.can_view(context, course):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this course."
            )

    @staticmethod
    def require_enrollment_access(context: UserContext, enrollment: Enrollment):
        if not PermissionHelper.can_access_enrollment(context, enrollment):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this enrollment."
            )

    @staticmethod
    def require_admin(context: UserContext, error_message: str = "Only administrators can perform this action."):
        if not PermissionHelper.is_admin(context):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=error_message)

    @staticmethod
    def require_not_student(context: UserContext, error_message: str = "Students cannot perform this action."):
        if PermissionHelper.is_student(context):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=error_message)


permission_helper = PermissionHelper()
