from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courseflow.core.database import Base
from courseflow.core.constants import CourseStatusEnum

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    thumbnail = Column(String, nullable=True)
    status = Column(Enum(CourseStatusEnum), nullable=False, default=CourseStatusEnum.DRAFT)
    is_public = Column(Boolean, default=False, nullable=False)
    price = Column(Integer, default=0, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User", back_populates="created_courses")
    modules = relationship("CourseModule", back_populates="course", cascade="all, delete-orphan")
    materials = relationship("Material", back_populates="course", cascade="all, delete-orphan")
    assignments = relationship("Assignment", back_populates="course", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    progress_records = relationship("Progress", back_populates="course", cascade="all, delete-orphan")

    @property
    def total_enrolled_students(self):
        return len(self.enrollments)
