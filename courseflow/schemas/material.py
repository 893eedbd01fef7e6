from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime

from courseflow.core.constants import MaterialTypeEnum


class MaterialBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: MaterialTypeEnum
    content: Optional[str] = None
    file_url: Optional[str] = None
    order_index: int = Field(0, ge=0)
    is_public: bool = True
    module_id: Optional[int] = None

class MaterialCreate(MaterialBase):
    @model_validator(mode="after")
    def link_requires_url(self):
        if self.type == MaterialTypeEnum.LINK and not (self.file_url and self.file_url.strip()):
            raise ValueError("A LINK material requires a non-empty file_url")
        return self

class MaterialUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[MaterialTypeEnum] = None
    content: Optional[str] = None
    file_url: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    is_public: Optional[bool] = None
    module_id: Optional[int] = None

class Material(MaterialBase):
    id: int
    course_id: int
    author_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class MaterialDetail(Material):
    """Material as served to a reader, with the storage reference resolved."""
    resolved_url: Optional[str] = None
    is_completed: bool = False
    time_spent: int = 0
