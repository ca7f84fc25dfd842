from sqlalchemy import Column, Integer, String, Numeric, Boolean, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin


class Teacher(Base, TimestampMixin):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(32), nullable=True)
    # Hourly rate; payroll multiplies it by delivered hours.
    rate_per_lesson = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    students = relationship("Student", back_populates="teacher")
    lessons = relationship("ScheduledLesson", back_populates="teacher")


Index("ix_teachers_active", Teacher.is_active)
