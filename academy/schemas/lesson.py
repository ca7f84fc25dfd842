from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from academy.models.scheduled_lesson import LessonStatus
from academy.services.ledger import ChargeSide, StudentStatus


class LessonCreate(BaseModel):
    student_id: int
    teacher_id: Optional[int] = None
    package_id: Optional[int] = None
    scheduled_date: date
    scheduled_time: time
    duration_minutes: Optional[int] = Field(default=None, ge=15, le=180)
    notes: Optional[str] = Field(default=None, max_length=500)


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    teacher_id: Optional[int] = None
    package_id: Optional[int] = None
    scheduled_date: date
    scheduled_time: time
    duration_minutes: Optional[int] = None
    status: LessonStatus
    charged_to: Optional[ChargeSide] = None
    notes: Optional[str] = None
    marked_at: Optional[datetime] = None


class MarkLessonRequest(BaseModel):
    status: Literal["completed", "absent", "cancelled"]
    notes: Optional[str] = Field(default=None, max_length=500)


class LessonUpdate(BaseModel):
    status: Optional[LessonStatus] = None
    duration_minutes: Optional[int] = Field(default=None, ge=15, le=180)
    notes: Optional[str] = Field(default=None, max_length=500)


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: time


class ConflictCheckRequest(BaseModel):
    teacher_id: int
    scheduled_date: date
    scheduled_time: time
    exclude_lesson_id: Optional[int] = None


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: list[LessonOut]


class LessonDeletedOut(BaseModel):
    lesson_id: int
    event: str
    wallet_balance: int
    debt_lessons: int
    status: StudentStatus
