from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from academy.services.ledger import ChargeSide, LedgerEvent, StudentStatus


class LedgerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    event: LedgerEvent
    lessons: Optional[int] = None
    wallet_before: int
    wallet_after: int
    debt_before: int
    debt_after: int
    status_after: StudentStatus
    reference: str
    description: str
    scheduled_lesson_id: Optional[int] = None
    package_id: Optional[int] = None


class BalanceOut(BaseModel):
    student_id: int
    wallet_balance: int
    debt_lessons: int
    status: StudentStatus
    charged_to: Optional[ChargeSide] = None
    debt_covered: int = 0


class FreeLessonsRequest(BaseModel):
    lessons: int = Field(..., ge=1, le=50)
    reason: str = Field(..., min_length=1, max_length=200)
