from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from academy.core.config import get_settings
from academy.models import LessonSchedule, LessonStatus, Package, PackageStatus, ScheduledLesson, Student, Teacher
from academy.services.ledger import LedgerEvent, LedgerResult
from academy.services.wallet import new_reference, post_ledger_event, run_in_student_transaction


@dataclass(frozen=True)
class WeeklySlot:
    # 0=Sunday .. 6=Saturday
    day_of_week: int
    time_slot: time


@dataclass
class PackagePurchase:
    package: Package
    result: LedgerResult
    old_wallet: int
    lessons: list[ScheduledLesson]


def _python_weekday(day_of_week: int) -> int:
    # Sunday-first template days -> datetime.weekday() (Monday=0).
    return (day_of_week - 1) % 7


def generate_schedule_dates(start_date: date, slots: Iterable[WeeklySlot], count: int) -> list[datetime]:
    """Expand a weekly template into ``count`` lesson datetimes from ``start_date`` (inclusive)."""
    ordered = sorted(
        {(_python_weekday(s.day_of_week), s.time_slot) for s in slots},
        key=lambda s: (s[0], s[1]),
    )
    if count <= 0 or not ordered:
        return []

    results: list[datetime] = []
    week_start = start_date - timedelta(days=start_date.weekday())
    while len(results) < count:
        for weekday, slot_time in ordered:
            day = week_start + timedelta(days=weekday)
            if day < start_date:
                continue
            results.append(datetime.combine(day, slot_time))
            if len(results) == count:
                break
        week_start += timedelta(days=7)
    return results


def _validate_slots(slots: list[WeeklySlot]) -> None:
    for slot in slots:
        if not 0 <= int(slot.day_of_week) <= 6:
            raise HTTPException(status_code=400, detail="day_of_week must be between 0 (Sunday) and 6 (Saturday)")


def add_package(
    db: Session,
    student_id: int,
    *,
    amount: Decimal,
    lessons_purchased: int,
    start_date: Optional[date] = None,
    lesson_duration: Optional[int] = None,
    teacher_id: Optional[int] = None,
    weekly_schedule: Optional[list[WeeklySlot]] = None,
) -> PackagePurchase:
    """Record a package purchase; new lessons pay down debt before reaching the wallet."""
    settings = get_settings()
    if amount is None or Decimal(amount) < 0:
        raise HTTPException(status_code=400, detail="Package amount cannot be negative")
    slots = list(weekly_schedule or [])
    _validate_slots(slots)
    if slots and teacher_id is None:
        raise HTTPException(status_code=400, detail="A teacher is required to generate a schedule")
    if teacher_id is not None and not db.query(Teacher).filter(Teacher.id == teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")

    start = start_date or datetime.now().date()
    duration = lesson_duration or settings.default_lesson_duration_minutes

    def _work(student: Student) -> PackagePurchase:
        old_wallet = int(student.wallet_balance or 0)
        package = Package(
            student_id=student.id,
            amount=Decimal(amount),
            lessons_purchased=lessons_purchased,
            lessons_used=0,
            lesson_duration=duration,
            start_date=start,
            next_payment_date=start + timedelta(days=settings.package_payment_cycle_days),
            is_renewal=int(student.number_of_renewals or 0) > 0,
            status=PackageStatus.ACTIVE,
        )
        db.add(package)
        db.flush()

        result, _ = post_ledger_event(
            db,
            student,
            LedgerEvent.PACKAGE_ADDED,
            lessons=lessons_purchased,
            reference=new_reference("PKG"),
            description=f"Package {package.id}: {lessons_purchased} lessons",
            package_id=package.id,
        )
        package.debt_covered = result.debt_covered
        # Lessons that paid off debt were already delivered.
        package.lessons_used = result.debt_covered
        if package.lessons_used >= package.lessons_purchased:
            package.status = PackageStatus.COMPLETED
            package.completed_date = start

        student.total_paid = Decimal(student.total_paid or 0) + Decimal(amount)
        student.number_of_renewals = int(student.number_of_renewals or 0) + 1
        student.current_package_id = package.id
        if teacher_id is not None:
            student.teacher_id = teacher_id

        lessons: list[ScheduledLesson] = []
        for slot in slots:
            db.add(LessonSchedule(package_id=package.id, day_of_week=slot.day_of_week, time_slot=slot.time_slot))
        for when in generate_schedule_dates(start, slots, lessons_purchased):
            lesson = ScheduledLesson(
                student_id=student.id,
                teacher_id=teacher_id,
                package_id=package.id,
                scheduled_date=when.date(),
                scheduled_time=when.time(),
                duration_minutes=duration,
                status=LessonStatus.SCHEDULED,
            )
            db.add(lesson)
            lessons.append(lesson)
        return PackagePurchase(package=package, result=result, old_wallet=old_wallet, lessons=lessons)

    purchase = run_in_student_transaction(db, student_id, _work)
    db.refresh(purchase.package)
    return purchase


def grant_free_lessons(db: Session, student_id: int, *, lessons: int, reason: str) -> LedgerResult:
    reason = (reason or "").strip()
    if not reason:
        raise HTTPException(status_code=400, detail="A reason is required to grant free lessons")

    def _work(student: Student) -> LedgerResult:
        result, _ = post_ledger_event(
            db,
            student,
            LedgerEvent.FREE_LESSONS_GRANTED,
            lessons=lessons,
            reference=new_reference("FREE"),
            description=f"Free lessons: {reason}",
        )
        return result

    return run_in_student_transaction(db, student_id, _work)


def list_packages(db: Session, student_id: int) -> list[Package]:
    return (
        db.query(Package)
        .filter(Package.student_id == student_id)
        .order_by(Package.id.desc())
        .all()
    )
