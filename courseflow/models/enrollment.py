from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum as SQLEnum, UniqueConstraint, func
from sqlalchemy.orm import relationship
from courseflow.core.database import Base
from courseflow.core.constants import EnrollmentStatusEnum

class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    status = Column(SQLEnum(EnrollmentStatusEnum), nullable=False, default=EnrollmentStatusEnum.ACTIVE)
    progress_percentage = Column(Integer, nullable=False, default=0)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    student = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    @property
    def is_blocking_course_deletion(self) -> bool:
        return self.status != EnrollmentStatusEnum.COMPLETED and self.progress_percentage < 100
