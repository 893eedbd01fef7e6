from dataclasses import dataclass, asdict
from sqlalchemy.orm import Session

from courseflow.models.assignment import Assignment, AssignmentSubmission
from courseflow.models.material import Material
from courseflow.models.progress import Progress


@dataclass(frozen=True)
class ProgressStats:
    total_materials: int
    completed_materials: int
    total_assignments: int
    submitted_assignments: int
    total_items: int
    completed_items: int
    progress_percentage: int

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_progress_from_counts(
    completed_materials: int,
    total_materials: int,
    submitted_assignments: int = 0,
    total_assignments: int = 0,
) -> ProgressStats:
    """Fold material and assignment counts into one percentage.

    Rounds half up to the nearest integer. The result is not clamped, so stale
    completions can push it past 100; use `clamp_percentage` before storing or
    showing it.
    """
    total_items = total_materials + total_assignments
    completed_items = completed_materials + submitted_assignments
    if total_items > 0:
        # integer form of floor(completed / total * 100 + 0.5)
        percentage = (completed_items * 200 + total_items) // (total_items * 2)
    else:
        percentage = 0
    return ProgressStats(
        total_materials=total_materials,
        completed_materials=completed_materials,
        total_assignments=total_assignments,
        submitted_assignments=submitted_assignments,
        total_items=total_items,
        completed_items=completed_items,
        progress_percentage=percentage,
    )


def clamp_percentage(value: int) -> int:
    return max(0, min(100, int(value)))


def calculate_course_progress(db: Session, student_id: int, course_id: int) -> ProgressStats:
    material_ids = db.query(Material.id).filter(Material.course_id == course_id)
    total_materials = material_ids.count()

    completed_materials = (
        db.query(Progress)
        .filter(
            Progress.student_id == student_id,
            Progress.course_id == course_id,
            Progress.is_completed.is_(True),
            Progress.material_id.in_(material_ids.scalar_subquery()),
        )
        .count()
    )

    total_assignments = db.query(Assignment).filter(Assignment.course_id == course_id).count()

    submitted_assignments = (
        db.query(AssignmentSubmission)
        .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
        .filter(
            Assignment.course_id == course_id,
            AssignmentSubmission.student_id == student_id,
        )
        .count()
    )

    return calculate_progress_from_counts(
        completed_materials,
        total_materials,
        submitted_assignments,
        total_assignments,
    )
