from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from academy.core.database import get_db
from academy.schemas.report import PayrollReport, StudentStatusReport
from academy.services.payroll import student_status_summary, teacher_payroll

router = APIRouter()


@router.get("/payroll", response_model=PayrollReport)
def payroll(
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    teacher_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    lines = teacher_payroll(db, from_date=from_date, to_date=to_date, teacher_id=teacher_id)
    return {
        "from_date": from_date,
        "to_date": to_date,
        "items": [asdict(line) for line in lines],
        "total_due": sum((line.amount_due for line in lines), Decimal("0")),
    }


@router.get("/student-status", response_model=StudentStatusReport)
def student_status(db: Session = Depends(get_db)):
    summary = student_status_summary(db)
    return {"counts": summary.counts, "low_balance": summary.low_balance}
