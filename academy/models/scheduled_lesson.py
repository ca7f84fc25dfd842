import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Date, Time, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin
from academy.services.ledger import ChargeSide


class LessonStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    ABSENT = "absent"
    CANCELLED = "cancelled"


class ScheduledLesson(Base, TimestampMixin):
    __tablename__ = "scheduled_lessons"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=True)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    status = Column(Enum(LessonStatus, name="lesson_status"), default=LessonStatus.SCHEDULED, nullable=False)
    # Which counter absorbed the completion; read back when it is reversed.
    charged_to = Column(Enum(ChargeSide, name="charge_side"), nullable=True)
    notes = Column(String(500), nullable=True)
    marked_at = Column(DateTime(timezone=True), nullable=True)

    student = relationship("Student", back_populates="lessons")
    teacher = relationship("Teacher", back_populates="lessons")
    package = relationship("Package", back_populates="lessons")


Index("ix_scheduled_lessons_teacher_slot", ScheduledLesson.teacher_id, ScheduledLesson.scheduled_date, ScheduledLesson.scheduled_time)
Index("ix_scheduled_lessons_student_status", ScheduledLesson.student_id, ScheduledLesson.status)
