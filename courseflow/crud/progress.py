from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.models.progress import Progress
from pydantic import BaseModel


class CRUDProgress(CRUDBase[Progress, BaseModel, BaseModel]):

    def get_record(self, db: Session, student_id: int, course_id: int, material_id: int) -> Optional[Progress]:
        return (
            db.query(Progress)
            .filter(
                Progress.student_id == student_id,
                Progress.course_id == course_id,
                Progress.material_id == material_id,
            )
            .first()
        )

    def upsert(
        self,
        db: Session,
        student_id: int,
        course_id: int,
        material_id: int,
        apply: Callable[[Progress], None],
    ) -> Progress:
        """Apply `apply` to the single progress row for the key, creating it first if needed.

        Must be the first write of the unit of work: a lost insert race rolls the
        session back and retries against the winner's row.
        """
        record = self.get_record(db, student_id, course_id, material_id)
        if record is None:
            record = Progress(
                student_id=student_id,
                course_id=course_id,
                material_id=material_id,
                is_completed=False,
                time_spent=0,
            )
            db.add(record)
        apply(record)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            record = self.get_record(db, student_id, course_id, material_id)
            apply(record)
            db.flush()
        return record

    def record_view(self, db: Session, student_id: int, course_id: int, material_id: int) -> Progress:
        def _touch(record: Progress):
            record.time_spent = (record.time_spent or 0) + 1
            record.last_accessed = datetime.now(timezone.utc)
        return self.upsert(db, student_id, course_id, material_id, _touch)

    def mark_completed(self, db: Session, student_id: int, course_id: int, material_id: int) -> Progress:
        def _complete(record: Progress):
            record.is_completed = True
            record.last_accessed = datetime.now(timezone.utc)
        return self.upsert(db, student_id, course_id, material_id, _complete)

    def detach_material(self, db: Session, material_id: int) -> int:
        """Keep history rows of a deleted material but unlink them from it."""
        return (
            db.query(Progress)
            .filter(Progress.material_id == material_id)
            .update({Progress.material_id: None}, synchronize_session=False)
        )

    def get_by_student_and_course(self, db: Session, student_id: int, course_id: int) -> List[Progress]:
        return (
            db.query(Progress)
            .filter(Progress.student_id == student_id, Progress.course_id == course_id)
            .all()
        )

    def activity_by_course(
        self, db: Session, course_id: int, material_ids
    ) -> Dict[int, Tuple[int, int, Optional[datetime]]]:
        """Per student: (completed live materials, total time spent, last accessed)."""
        rows = (
            db.query(
                Progress.student_id,
                func.sum(Progress.time_spent),
                func.max(Progress.last_accessed),
            )
            .filter(Progress.course_id == course_id)
            .group_by(Progress.student_id)
            .all()
        )
        activity = {student_id: [0, int(total or 0), last] for student_id, total, last in rows}
        if material_ids:
            completed_rows = (
                db.query(Progress.student_id, func.count(Progress.id))
                .filter(
                    Progress.course_id == course_id,
                    Progress.is_completed.is_(True),
                    Progress.material_id.in_(material_ids),
                )
                .group_by(Progress.student_id)
                .all()
            )
            for student_id, completed in completed_rows:
                if student_id in activity:
                    activity[student_id][0] = completed
        return {k: tuple(v) for k, v in activity.items()}

progress = CRUDProgress(Progress)
