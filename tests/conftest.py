import os

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Academy Back Office Test",
        "ENVIRONMENT": "test",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "RATE_LIMIT_ENABLED": "false",
        "LEDGER_RETRY_COUNT": "3",
        "LEDGER_RETRY_BACKOFF_SECONDS": "0",
        "DEFAULT_LESSON_DURATION_MINUTES": "45",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

from academy.core.database import Base, SessionLocal, engine  # noqa: E402
import academy.models  # noqa: E402,F401


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_teacher(db):
    from decimal import Decimal

    from academy.models import Teacher

    def _make(name="Amina", rate="60", email=None):
        teacher = Teacher(name=name, email=email, rate_per_lesson=Decimal(rate), is_active=True)
        db.add(teacher)
        db.commit()
        db.refresh(teacher)
        return teacher

    return _make


@pytest.fixture
def make_student(db):
    from academy.models import Student
    from academy.services.ledger import derive_status

    def _make(name="Lina", wallet=0, debt=0, teacher=None, phone="0500000000"):
        student = Student(
            name=name,
            phone=phone,
            teacher_id=teacher.id if teacher is not None else None,
            wallet_balance=wallet,
            debt_lessons=debt,
            status=derive_status(wallet, debt),
            total_paid=0,
            number_of_renewals=0,
        )
        db.add(student)
        db.commit()
        db.refresh(student)
        return student

    return _make
