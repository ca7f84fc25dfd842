from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from academy.core.database import get_db
from academy.models import Teacher
from academy.schemas.teacher import TeacherCreate, TeacherOut

router = APIRouter()


@router.post("", response_model=TeacherOut, status_code=201)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)):
    email = (payload.email or "").strip().lower() or None
    if email and db.query(Teacher).filter(Teacher.email == email).first():
        raise HTTPException(status_code=409, detail="A teacher with this email already exists")
    teacher = Teacher(
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        rate_per_lesson=payload.rate_per_lesson,
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.get("", response_model=list[TeacherOut])
def list_teachers(active_only: bool = True, db: Session = Depends(get_db)):
    query = db.query(Teacher)
    if active_only:
        query = query.filter(Teacher.is_active.is_(True))
    return query.order_by(Teacher.name.asc()).all()
