from pydantic import BaseModel, EmailStr, ConfigDict, field_validator
from typing import Optional

from courseflow.core.constants import RoleEnum


class UserBase(BaseModel):
    full_name: Optional[str] = None
    email: EmailStr
    avatar: Optional[str] = None

class UserCreate(UserBase):
    password: Optional[str] = None
    role: RoleEnum = RoleEnum.STUDENT

class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("full_name")
    def not_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Full name cannot be empty")
        return v

class User(UserBase):
    id: int
    role: RoleEnum
    is_active: bool
    model_config = ConfigDict(from_attributes=True)

class UserContext(BaseModel):
    """The authenticated actor of a request and the role it acts under."""
    user: User
    role: RoleEnum
    model_config = ConfigDict(from_attributes=True)
