from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courseflow.core.database import Base
from courseflow.core.constants import MaterialTypeEnum

class Material(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    type = Column(Enum(MaterialTypeEnum), nullable=False)
    content = Column(Text, nullable=True)
    file_url = Column(String, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, default=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id"), nullable=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course", back_populates="materials")
    module = relationship("CourseModule", back_populates="materials")

    @property
    def has_stored_file(self) -> bool:
        return bool(self.file_url) and self.type != MaterialTypeEnum.LINK
