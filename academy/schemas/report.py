from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from academy.schemas.student import StudentOut


class PayrollLineOut(BaseModel):
    teacher_id: int
    teacher_name: str
    lessons_taken: int
    total_minutes: int
    hours: Decimal
    rate_per_lesson: Decimal
    amount_due: Decimal


class PayrollReport(BaseModel):
    from_date: date
    to_date: date
    items: list[PayrollLineOut]
    total_due: Decimal


class StudentStatusReport(BaseModel):
    counts: dict[str, int]
    low_balance: list[StudentOut]
