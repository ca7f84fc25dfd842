from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index
from sqlalchemy.orm import relationship
from academy.core.database import Base
from academy.models.base import TimestampMixin
from academy.services.ledger import AccountBalance, StudentStatus


class Student(Base, TimestampMixin):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=False)
    parent_phone = Column(String(32), nullable=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=True)
    current_package_id = Column(Integer, nullable=True)

    # Ledger counters; only academy.services.wallet writes these three.
    wallet_balance = Column(Integer, default=0, nullable=False)
    debt_lessons = Column(Integer, default=0, nullable=False)
    status = Column(Enum(StudentStatus, name="student_status"), default=StudentStatus.GRACE, nullable=False)

    total_paid = Column(Numeric(12, 2), default=0, nullable=False)
    number_of_renewals = Column(Integer, default=0, nullable=False)

    teacher = relationship("Teacher", back_populates="students")
    packages = relationship("Package", back_populates="student", foreign_keys="Package.student_id")
    lessons = relationship("ScheduledLesson", back_populates="student")
    ledger_entries = relationship("WalletLedger", back_populates="student")

    def balance(self) -> AccountBalance:
        return AccountBalance(
            wallet_balance=int(self.wallet_balance or 0),
            debt_lessons=int(self.debt_lessons or 0),
        )


Index("ix_students_status", Student.status)
Index("ix_students_teacher_id", Student.teacher_id)
