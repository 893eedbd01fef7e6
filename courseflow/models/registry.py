# Import every model so relationship() strings resolve and metadata is complete.
from courseflow.models.user import User  # noqa: F401
from courseflow.models.course import Course  # noqa: F401
from courseflow.models.course_module import CourseModule  # noqa: F401
from courseflow.models.material import Material  # noqa: F401
from courseflow.models.assignment import Assignment, AssignmentSubmission  # noqa: F401
from courseflow.models.enrollment import Enrollment  # noqa: F401
from courseflow.models.progress import Progress  # noqa: F401
