from datetime import date, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from academy.models.package import PackageStatus
from academy.schemas.lesson import LessonOut
from academy.services.ledger import StudentStatus


class WeeklySlotIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    time_slot: time


class PackageCreate(BaseModel):
    amount: Decimal = Field(..., ge=0)
    lessons_purchased: int = Field(..., ge=1, le=500)
    start_date: Optional[date] = None
    lesson_duration: Optional[int] = Field(default=None, ge=15, le=180)
    teacher_id: Optional[int] = None
    weekly_schedule: list[WeeklySlotIn] = Field(default_factory=list)


class PackageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    amount: Decimal
    lessons_purchased: int
    lessons_used: int
    debt_covered: int
    lesson_duration: Optional[int] = None
    start_date: Optional[date] = None
    next_payment_date: Optional[date] = None
    is_renewal: bool
    status: PackageStatus
    completed_date: Optional[date] = None


class PackagePurchaseOut(BaseModel):
    package: PackageOut
    old_wallet: int
    new_wallet: int
    debt_covered: int
    debt_lessons: int
    status: StudentStatus
    lessons: list[LessonOut]
