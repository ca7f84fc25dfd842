import enum
from sqlalchemy import Column, Integer, ForeignKey, Numeric, Boolean, Date, Enum, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin


class PackageStatus(str, enum.Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"


class Package(Base, TimestampMixin):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    lessons_purchased = Column(Integer, nullable=False)
    lessons_used = Column(Integer, default=0, nullable=False)
    debt_covered = Column(Integer, default=0, nullable=False)
    lesson_duration = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    next_payment_date = Column(Date, nullable=True)
    is_renewal = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(PackageStatus, name="package_status"), default=PackageStatus.ACTIVE, nullable=False)
    completed_date = Column(Date, nullable=True)

    student = relationship("Student", back_populates="packages", foreign_keys=[student_id])
    schedule = relationship("LessonSchedule", back_populates="package", cascade="all, delete-orphan")
    lessons = relationship("ScheduledLesson", back_populates="package")


Index("ix_packages_student_status", Package.student_id, Package.status)
