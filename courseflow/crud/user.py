from typing import Optional
from sqlalchemy.orm import Session

from courseflow.crud.base import CRUDBase
from courseflow.core.security import get_password_hash
from courseflow.models.user import User
from courseflow.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def create(self, db: Session, *, obj_in: UserCreate, commit: bool = True) -> User:
        db_obj = User(
            full_name=obj_in.full_name,
            email=obj_in.email,
            avatar=obj_in.avatar,
            role=obj_in.role,
            hashed_password=get_password_hash(obj_in.password) if obj_in.password else None,
        )
        db.add(db_obj)
        db.flush()
        if commit:
            db.commit()
        db.refresh(db_obj)
        return db_obj

    def set_password(self, db: Session, *, db_obj: User, password: str) -> User:
        db_obj.hashed_password = get_password_hash(password)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

user = CRUDUser(User)
