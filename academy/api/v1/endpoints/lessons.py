from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from academy.core.database import get_db
from academy.middlewares.rate_limit import WRITE_LIMIT, limiter
from academy.models.scheduled_lesson import LessonStatus
from academy.schemas.lesson import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    LessonCreate,
    LessonDeletedOut,
    LessonOut,
    LessonUpdate,
    MarkLessonRequest,
    RescheduleRequest,
)
from academy.services import lessons as lesson_service
from academy.services.wallet import get_student

router = APIRouter()


@router.post("", response_model=LessonOut, status_code=201)
def create_lesson(payload: LessonCreate, db: Session = Depends(get_db)):
    return lesson_service.add_lesson(
        db,
        student_id=payload.student_id,
        teacher_id=payload.teacher_id,
        package_id=payload.package_id,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        duration_minutes=payload.duration_minutes,
        notes=payload.notes,
    )


@router.get("", response_model=list[LessonOut])
def list_lessons(
    student_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    package_id: Optional[int] = None,
    on_date: Optional[date] = None,
    status: Optional[LessonStatus] = None,
    db: Session = Depends(get_db),
):
    return lesson_service.list_lessons(
        db,
        student_id=student_id,
        teacher_id=teacher_id,
        package_id=package_id,
        on_date=on_date,
        status=status,
    )


@router.post("/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(payload: ConflictCheckRequest, db: Session = Depends(get_db)):
    conflicts = lesson_service.find_conflicts(
        db,
        teacher_id=payload.teacher_id,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        exclude_lesson_id=payload.exclude_lesson_id,
    )
    return {"has_conflict": bool(conflicts), "conflicts": conflicts}


@router.get("/{lesson_id}", response_model=LessonOut)
def read_lesson(lesson_id: int, db: Session = Depends(get_db)):
    return lesson_service.get_lesson(db, lesson_id)


@router.post("/{lesson_id}/mark", response_model=LessonOut)
@limiter.limit(WRITE_LIMIT)
def mark_lesson(request: Request, lesson_id: int, payload: MarkLessonRequest, db: Session = Depends(get_db)):
    return lesson_service.mark_lesson(db, lesson_id, LessonStatus(payload.status), notes=payload.notes)


@router.patch("/{lesson_id}", response_model=LessonOut)
@limiter.limit(WRITE_LIMIT)
def update_lesson(request: Request, lesson_id: int, payload: LessonUpdate, db: Session = Depends(get_db)):
    return lesson_service.update_lesson(
        db,
        lesson_id,
        status=payload.status,
        duration_minutes=payload.duration_minutes,
        notes=payload.notes,
    )


@router.post("/{lesson_id}/reschedule", response_model=LessonOut)
@limiter.limit(WRITE_LIMIT)
def reschedule_lesson(request: Request, lesson_id: int, payload: RescheduleRequest, db: Session = Depends(get_db)):
    return lesson_service.reschedule_lesson(db, lesson_id, new_date=payload.new_date, new_time=payload.new_time)


@router.delete("/{lesson_id}", response_model=LessonDeletedOut)
@limiter.limit(WRITE_LIMIT)
def delete_lesson(request: Request, lesson_id: int, db: Session = Depends(get_db)):
    student_id = lesson_service.get_lesson(db, lesson_id).student_id
    event = lesson_service.delete_lesson(db, lesson_id)
    student = get_student(db, student_id)
    return {
        "lesson_id": lesson_id,
        "event": event.value,
        "wallet_balance": student.wallet_balance,
        "debt_lessons": student.debt_lessons,
        "status": student.status,
    }
