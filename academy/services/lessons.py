from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from academy.core.config import get_settings
from academy.models import LessonStatus, Package, PackageStatus, ScheduledLesson, Student, Teacher
from academy.services.ledger import LedgerEvent
from academy.services.wallet import get_student, post_ledger_event, run_in_student_transaction

# Status a lesson is in -> event emitted when it is deleted.
_DELETE_EVENTS = {
    LessonStatus.SCHEDULED: LedgerEvent.SCHEDULED_LESSON_DELETED,
    LessonStatus.COMPLETED: LedgerEvent.COMPLETED_LESSON_DELETED,
    LessonStatus.ABSENT: LedgerEvent.ABSENT_OR_CANCELLED_DELETED,
    LessonStatus.CANCELLED: LedgerEvent.ABSENT_OR_CANCELLED_DELETED,
}

_MARK_EVENTS = {
    LessonStatus.COMPLETED: LedgerEvent.LESSON_COMPLETED,
    LessonStatus.ABSENT: LedgerEvent.LESSON_ABSENT,
    LessonStatus.CANCELLED: LedgerEvent.LESSON_CANCELLED,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_lesson(db: Session, lesson_id: int) -> ScheduledLesson:
    lesson = db.query(ScheduledLesson).filter(ScheduledLesson.id == lesson_id).first()
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


def _lock_lesson(db: Session, lesson_id: int) -> ScheduledLesson:
    lesson = (
        db.query(ScheduledLesson)
        .filter(ScheduledLesson.id == lesson_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


def _ensure_teacher(db: Session, teacher_id: Optional[int]) -> None:
    if teacher_id is None:
        return
    if not db.query(Teacher).filter(Teacher.id == teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")


def _ensure_own_package(db: Session, student: Student, package_id: Optional[int]) -> None:
    if package_id is None:
        return
    package = db.query(Package).filter(Package.id == package_id).first()
    # Lessons only draw on the student's own packages.
    if not package or package.student_id != student.id:
        raise HTTPException(status_code=404, detail="Package not found for this student")


def find_conflicts(
    db: Session,
    *,
    teacher_id: int,
    scheduled_date: date,
    scheduled_time: time,
    exclude_lesson_id: Optional[int] = None,
) -> list[ScheduledLesson]:
    query = db.query(ScheduledLesson).filter(
        ScheduledLesson.teacher_id == teacher_id,
        ScheduledLesson.scheduled_date == scheduled_date,
        ScheduledLesson.scheduled_time == scheduled_time,
        ScheduledLesson.status == LessonStatus.SCHEDULED,
    )
    if exclude_lesson_id is not None:
        query = query.filter(ScheduledLesson.id != exclude_lesson_id)
    return query.all()


def _raise_on_conflict(db: Session, **slot) -> None:
    if slot.get("teacher_id") is None:
        return
    conflicts = find_conflicts(db, **slot)
    if conflicts:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Teacher already has a lesson at this time.",
                "code": "LESSON_SLOT_CONFLICT",
                "conflicting_lesson_ids": [c.id for c in conflicts],
            },
        )


def list_lessons(
    db: Session,
    *,
    student_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    package_id: Optional[int] = None,
    on_date: Optional[date] = None,
    status: Optional[LessonStatus] = None,
) -> list[ScheduledLesson]:
    query = db.query(ScheduledLesson)
    if student_id is not None:
        query = query.filter(ScheduledLesson.student_id == student_id)
    if teacher_id is not None:
        query = query.filter(ScheduledLesson.teacher_id == teacher_id)
    if package_id is not None:
        query = query.filter(ScheduledLesson.package_id == package_id)
    if on_date is not None:
        query = query.filter(ScheduledLesson.scheduled_date == on_date)
    if status is not None:
        query = query.filter(ScheduledLesson.status == status)
    return query.order_by(ScheduledLesson.scheduled_date.asc(), ScheduledLesson.scheduled_time.asc()).all()


def add_lesson(
    db: Session,
    *,
    student_id: int,
    scheduled_date: date,
    scheduled_time: time,
    teacher_id: Optional[int] = None,
    package_id: Optional[int] = None,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
) -> ScheduledLesson:
    # Adding a lesson reserves a calendar slot only; the wallet is untouched.
    student = get_student(db, student_id)
    teacher_id = teacher_id if teacher_id is not None else student.teacher_id
    _ensure_teacher(db, teacher_id)
    _ensure_own_package(db, student, package_id)
    _raise_on_conflict(db, teacher_id=teacher_id, scheduled_date=scheduled_date, scheduled_time=scheduled_time)

    lesson = ScheduledLesson(
        student_id=student.id,
        teacher_id=teacher_id,
        package_id=package_id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes or get_settings().default_lesson_duration_minutes,
        status=LessonStatus.SCHEDULED,
        notes=notes,
    )
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


def _adjust_package_usage(db: Session, package_id: Optional[int], delta: int) -> None:
    if package_id is None:
        return
    package = db.query(Package).filter(Package.id == package_id).with_for_update().first()
    if not package:
        return
    package.lessons_used = max(0, int(package.lessons_used or 0) + delta)
    if package.lessons_used >= package.lessons_purchased:
        if package.status != PackageStatus.COMPLETED:
            package.status = PackageStatus.COMPLETED
            package.completed_date = _now().date()
    elif package.status == PackageStatus.COMPLETED:
        package.status = PackageStatus.ACTIVE
        package.completed_date = None


def _complete(db: Session, student: Student, lesson: ScheduledLesson, description: str) -> None:
    result, _ = post_ledger_event(
        db,
        student,
        LedgerEvent.LESSON_COMPLETED,
        description=description,
        scheduled_lesson_id=lesson.id,
        package_id=lesson.package_id,
    )
    lesson.status = LessonStatus.COMPLETED
    lesson.charged_to = result.charged_to
    lesson.marked_at = _now()
    _adjust_package_usage(db, lesson.package_id, +1)


def _reverse_completion(db: Session, student: Student, lesson: ScheduledLesson, description: str) -> None:
    post_ledger_event(
        db,
        student,
        LedgerEvent.COMPLETED_LESSON_DELETED,
        charged_to=lesson.charged_to,
        description=description,
        scheduled_lesson_id=lesson.id,
        package_id=lesson.package_id,
    )
    lesson.charged_to = None
    _adjust_package_usage(db, lesson.package_id, -1)


def mark_lesson(db: Session, lesson_id: int, status: LessonStatus, notes: Optional[str] = None) -> ScheduledLesson:
    if status not in _MARK_EVENTS:
        raise HTTPException(status_code=400, detail="Lessons can only be marked completed, absent or cancelled")
    student_id = get_lesson(db, lesson_id).student_id

    def _work(student: Student) -> ScheduledLesson:
        lesson = _lock_lesson(db, lesson_id)
        if lesson.status != LessonStatus.SCHEDULED:
            raise HTTPException(status_code=409, detail=f"Lesson is already {lesson.status.value}")
        if notes is not None:
            lesson.notes = notes
        if status == LessonStatus.COMPLETED:
            _complete(db, student, lesson, f"Lesson {lesson.id} on {lesson.scheduled_date} completed")
            return lesson
        post_ledger_event(
            db,
            student,
            _MARK_EVENTS[status],
            description=f"Lesson {lesson.id} on {lesson.scheduled_date} marked {status.value}",
            scheduled_lesson_id=lesson.id,
            package_id=lesson.package_id,
        )
        lesson.status = status
        lesson.marked_at = _now()
        return lesson

    lesson = run_in_student_transaction(db, student_id, _work)
    db.refresh(lesson)
    return lesson


def update_lesson(
    db: Session,
    lesson_id: int,
    *,
    status: Optional[LessonStatus] = None,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
) -> ScheduledLesson:
    """Edit a lesson; status edits move the wallet only across ``completed``."""
    student_id = get_lesson(db, lesson_id).student_id

    def _work(student: Student) -> ScheduledLesson:
        lesson = _lock_lesson(db, lesson_id)
        if duration_minutes is not None:
            lesson.duration_minutes = duration_minutes
        if notes is not None:
            lesson.notes = notes
        if status is None or status == lesson.status:
            return lesson

        old_status = lesson.status
        if status == LessonStatus.SCHEDULED:
            _raise_on_conflict(
                db,
                teacher_id=lesson.teacher_id,
                scheduled_date=lesson.scheduled_date,
                scheduled_time=lesson.scheduled_time,
                exclude_lesson_id=lesson.id,
            )
        if old_status == LessonStatus.COMPLETED:
            _reverse_completion(db, student, lesson, f"Lesson {lesson.id} changed from completed to {status.value}")
        if status == LessonStatus.COMPLETED:
            _complete(db, student, lesson, f"Lesson {lesson.id} changed from {old_status.value} to completed")
        else:
            lesson.status = status
            lesson.marked_at = None if status == LessonStatus.SCHEDULED else _now()
        return lesson

    lesson = run_in_student_transaction(db, student_id, _work)
    db.refresh(lesson)
    return lesson


def reschedule_lesson(db: Session, lesson_id: int, *, new_date: date, new_time: time) -> ScheduledLesson:
    student_id = get_lesson(db, lesson_id).student_id

    def _work(student: Student) -> ScheduledLesson:
        lesson = _lock_lesson(db, lesson_id)
        if lesson.status != LessonStatus.SCHEDULED:
            raise HTTPException(status_code=409, detail="Only scheduled lessons can be rescheduled")
        _raise_on_conflict(
            db,
            teacher_id=lesson.teacher_id,
            scheduled_date=new_date,
            scheduled_time=new_time,
            exclude_lesson_id=lesson.id,
        )
        old_slot = f"{lesson.scheduled_date} {lesson.scheduled_time.strftime('%H:%M')}"
        lesson.scheduled_date = new_date
        lesson.scheduled_time = new_time
        post_ledger_event(
            db,
            student,
            LedgerEvent.LESSON_RESCHEDULED,
            description=f"Lesson {lesson.id} moved from {old_slot} to {new_date} {new_time.strftime('%H:%M')}",
            scheduled_lesson_id=lesson.id,
            package_id=lesson.package_id,
        )
        return lesson

    lesson = run_in_student_transaction(db, student_id, _work)
    db.refresh(lesson)
    return lesson


def delete_lesson(db: Session, lesson_id: int) -> LedgerEvent:
    student_id = get_lesson(db, lesson_id).student_id

    def _work(student: Student) -> LedgerEvent:
        lesson = _lock_lesson(db, lesson_id)
        event = _DELETE_EVENTS[lesson.status]
        description = f"Lesson {lesson.id} on {lesson.scheduled_date} deleted while {lesson.status.value}"
        if event == LedgerEvent.COMPLETED_LESSON_DELETED:
            _reverse_completion(db, student, lesson, description)
        else:
            post_ledger_event(
                db,
                student,
                event,
                description=description,
                scheduled_lesson_id=lesson.id,
                package_id=lesson.package_id,
            )
        db.delete(lesson)
        return event

    return run_in_student_transaction(db, student_id, _work)
