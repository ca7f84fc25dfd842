from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from academy.services.ledger import StudentStatus


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=3, max_length=32)
    parent_phone: Optional[str] = Field(default=None, max_length=32)
    teacher_id: Optional[int] = None


class StudentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    name: str
    phone: str
    parent_phone: Optional[str] = None
    teacher_id: Optional[int] = None
    current_package_id: Optional[int] = None
    wallet_balance: int
    debt_lessons: int
    status: StudentStatus
    total_paid: Decimal
    number_of_renewals: int
