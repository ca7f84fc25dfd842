from sqlalchemy import Column, Integer, ForeignKey, String, Enum, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin
from academy.services.ledger import LedgerEvent, StudentStatus


class WalletLedger(Base, TimestampMixin):
    __tablename__ = "wallet_ledger"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    event = Column(Enum(LedgerEvent, name="ledger_event"), nullable=False)
    lessons = Column(Integer, nullable=True)
    wallet_before = Column(Integer, nullable=False)
    wallet_after = Column(Integer, nullable=False)
    debt_before = Column(Integer, nullable=False)
    debt_after = Column(Integer, nullable=False)
    status_after = Column(Enum(StudentStatus, name="student_status"), nullable=False)
    reference = Column(String(64), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    # Plain ids: lessons can be deleted while their ledger rows stay.
    scheduled_lesson_id = Column(Integer, nullable=True)
    package_id = Column(Integer, nullable=True)

    student = relationship("Student", back_populates="ledger_entries")


Index("ix_wallet_ledger_student_event", WalletLedger.student_id, WalletLedger.event)
