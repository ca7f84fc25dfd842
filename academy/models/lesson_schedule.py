from sqlalchemy import CheckConstraint, Column, Integer, ForeignKey, Time, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin


class LessonSchedule(Base, TimestampMixin):
    """Weekly template row of a package: one lesson every ``day_of_week`` at ``time_slot``."""

    __tablename__ = "lesson_schedules"
    __table_args__ = (CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_lesson_schedules_day_of_week"),)

    id = Column(Integer, primary_key=True, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)
    # 0=Sunday .. 6=Saturday
    day_of_week = Column(Integer, nullable=False)
    time_slot = Column(Time, nullable=False)

    package = relationship("Package", back_populates="schedule")


Index("ix_lesson_schedules_package_id", LessonSchedule.package_id)
