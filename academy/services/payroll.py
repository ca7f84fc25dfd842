from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from academy.core.config import get_settings
from academy.models import LessonStatus, ScheduledLesson, Student, StudentStatus, Teacher
from academy.services.ledger import ACTIVE_WALLET_THRESHOLD

_CENTS = Decimal("0.01")


@dataclass
class PayrollLine:
    teacher_id: int
    teacher_name: str
    lessons_taken: int
    total_minutes: int
    hours: Decimal
    rate_per_lesson: Decimal
    amount_due: Decimal


@dataclass
class StatusSummary:
    counts: dict[str, int]
    low_balance: list[Student] = field(default_factory=list)


def teacher_payroll(
    db: Session,
    *,
    from_date: date,
    to_date: date,
    teacher_id: Optional[int] = None,
) -> list[PayrollLine]:
    """Completed lessons in ``[from_date, to_date]`` paid at the teacher's hourly rate."""
    if from_date > to_date:
        raise HTTPException(status_code=400, detail="from must not be after to")
    default_minutes = get_settings().default_lesson_duration_minutes

    query = db.query(ScheduledLesson.teacher_id, ScheduledLesson.duration_minutes).filter(
        ScheduledLesson.status == LessonStatus.COMPLETED,
        ScheduledLesson.teacher_id.isnot(None),
        ScheduledLesson.scheduled_date >= from_date,
        ScheduledLesson.scheduled_date <= to_date,
    )
    if teacher_id is not None:
        query = query.filter(ScheduledLesson.teacher_id == teacher_id)

    stats: dict[int, list[int]] = {}
    for lesson_teacher_id, duration in query.all():
        lessons_minutes = stats.setdefault(lesson_teacher_id, [0, 0])
        lessons_minutes[0] += 1
        lessons_minutes[1] += int(duration or default_minutes)
    if not stats:
        return []

    teachers = db.query(Teacher).filter(Teacher.id.in_(list(stats))).order_by(Teacher.name.asc()).all()
    lines: list[PayrollLine] = []
    for teacher in teachers:
        lessons_taken, total_minutes = stats[teacher.id]
        hours = Decimal(total_minutes) / Decimal(60)
        rate = Decimal(teacher.rate_per_lesson or 0)
        lines.append(
            PayrollLine(
                teacher_id=teacher.id,
                teacher_name=teacher.name,
                lessons_taken=lessons_taken,
                total_minutes=total_minutes,
                hours=hours.quantize(_CENTS, rounding=ROUND_HALF_UP),
                rate_per_lesson=rate,
                amount_due=(hours * rate).quantize(_CENTS, rounding=ROUND_HALF_UP),
            )
        )
    return lines


def student_status_summary(db: Session) -> StatusSummary:
    counts = {status.value: 0 for status in StudentStatus}
    for status, total in db.query(Student.status, func.count(Student.id)).group_by(Student.status).all():
        counts[StudentStatus(status).value] = int(total)
    low_balance = (
        db.query(Student)
        .filter(Student.wallet_balance < ACTIVE_WALLET_THRESHOLD)
        .order_by(Student.wallet_balance.asc(), Student.debt_lessons.desc(), Student.name.asc())
        .all()
    )
    return StatusSummary(counts=counts, low_balance=low_balance)
