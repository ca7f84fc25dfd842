from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from academy.core.database import get_db
from academy.middlewares.rate_limit import WRITE_LIMIT, limiter
from academy.models import Student, Teacher
from academy.schemas.package import PackageCreate, PackageOut, PackagePurchaseOut
from academy.schemas.student import StudentCreate, StudentOut
from academy.schemas.wallet import BalanceOut, FreeLessonsRequest, LedgerOut
from academy.services.ledger import StudentStatus, derive_status
from academy.services.packages import WeeklySlot, add_package, grant_free_lessons, list_packages
from academy.services.wallet import get_student, list_ledger_entries

router = APIRouter()


def _coerce_status(value: Optional[str]) -> Optional[StudentStatus]:
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    for member in StudentStatus:
        if raw.lower() == member.value.lower() or raw.upper() == member.name:
            return member
    raise HTTPException(status_code=400, detail="Invalid status")


@router.post("", response_model=StudentOut, status_code=201)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)):
    if payload.teacher_id is not None and not db.query(Teacher).filter(Teacher.id == payload.teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")
    student = Student(
        name=payload.name.strip(),
        phone=payload.phone.strip(),
        parent_phone=payload.parent_phone,
        teacher_id=payload.teacher_id,
        wallet_balance=0,
        debt_lessons=0,
        status=derive_status(0, 0),
        total_paid=0,
        number_of_renewals=0,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@router.get("", response_model=list[StudentOut])
def list_students(
    status: Optional[str] = None,
    teacher_id: Optional[int] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Student)
    status_enum = _coerce_status(status)
    if status_enum is not None:
        query = query.filter(Student.status == status_enum)
    if teacher_id is not None:
        query = query.filter(Student.teacher_id == teacher_id)
    if q:
        needle = f"%{q.strip()}%"
        query = query.filter(Student.name.ilike(needle) | Student.phone.ilike(needle))
    return query.order_by(Student.name.asc()).all()


@router.get("/{student_id}", response_model=StudentOut)
def read_student(student_id: int, db: Session = Depends(get_db)):
    return get_student(db, student_id)


@router.get("/{student_id}/ledger", response_model=list[LedgerOut])
def read_ledger(student_id: int, limit: int = 50, db: Session = Depends(get_db)):
    if limit < 1 or limit > 200:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 200")
    get_student(db, student_id)
    return list_ledger_entries(db, student_id, limit=limit)


@router.get("/{student_id}/packages", response_model=list[PackageOut])
def read_packages(student_id: int, db: Session = Depends(get_db)):
    get_student(db, student_id)
    return list_packages(db, student_id)


@router.post("/{student_id}/packages", response_model=PackagePurchaseOut, status_code=201)
@limiter.limit(WRITE_LIMIT)
def purchase_package(request: Request, student_id: int, payload: PackageCreate, db: Session = Depends(get_db)):
    purchase = add_package(
        db,
        student_id,
        amount=payload.amount,
        lessons_purchased=payload.lessons_purchased,
        start_date=payload.start_date,
        lesson_duration=payload.lesson_duration,
        teacher_id=payload.teacher_id,
        weekly_schedule=[WeeklySlot(day_of_week=s.day_of_week, time_slot=s.time_slot) for s in payload.weekly_schedule],
    )
    return {
        "package": purchase.package,
        "old_wallet": purchase.old_wallet,
        "new_wallet": purchase.result.wallet_balance,
        "debt_covered": purchase.result.debt_covered,
        "debt_lessons": purchase.result.debt_lessons,
        "status": purchase.result.status,
        "lessons": purchase.lessons,
    }


@router.post("/{student_id}/free-lessons", response_model=BalanceOut)
@limiter.limit(WRITE_LIMIT)
def add_free_lessons(request: Request, student_id: int, payload: FreeLessonsRequest, db: Session = Depends(get_db)):
    result = grant_free_lessons(db, student_id, lessons=payload.lessons, reason=payload.reason)
    return {
        "student_id": student_id,
        "wallet_balance": result.wallet_balance,
        "debt_lessons": result.debt_lessons,
        "status": result.status,
    }
