from typing import List, Set
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.models.course_module import CourseModule
from courseflow.models.material import Material
from courseflow.schemas.material import MaterialCreate, MaterialUpdate


class CRUDMaterial(CRUDBase[Material, MaterialCreate, MaterialUpdate]):
    def get_by_course(self, db: Session, course_id: int) -> List[Material]:
        # unassigned materials sort after every module
        return (
            db.query(Material)
            .outerjoin(CourseModule, Material.module_id == CourseModule.id)
            .filter(Material.course_id == course_id)
            .order_by(
                CourseModule.id.is_(None),
                CourseModule.order_index,
                CourseModule.created_at,
                CourseModule.id,
                Material.order_index,
                Material.created_at,
                Material.id,
            )
            .all()
        )

    def get_ids_by_course(self, db: Session, course_id: int) -> Set[int]:
        rows = db.query(Material.id).filter(Material.course_id == course_id).all()
        return {row[0] for row in rows}

    def count_by_module(self, db: Session, module_id: int) -> int:
        return db.query(Material).filter(Material.module_id == module_id).count()

material = CRUDMaterial(Material)
