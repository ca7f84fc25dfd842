from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi import HTTPException

from academy.models import LessonSchedule, PackageStatus, ScheduledLesson, StudentStatus, WalletLedger
from academy.services.ledger import InvalidLedgerEventError, LedgerEvent
from academy.services.packages import WeeklySlot, add_package, generate_schedule_dates, grant_free_lessons, list_packages

MONDAY = date(2026, 3, 2)
SUNDAY, WEDNESDAY = 0, 3


def test_generate_schedule_dates_walks_weeks_in_order():
    slots = [WeeklySlot(SUNDAY, time(17, 0)), WeeklySlot(WEDNESDAY, time(17, 0))]

    dates = generate_schedule_dates(MONDAY, slots, 4)

    assert dates == [
        datetime(2026, 3, 4, 17, 0),
        datetime(2026, 3, 8, 17, 0),
        datetime(2026, 3, 11, 17, 0),
        datetime(2026, 3, 15, 17, 0),
    ]


def test_generate_schedule_dates_includes_start_day_and_orders_same_day_slots():
    slots = [WeeklySlot(WEDNESDAY, time(18, 0)), WeeklySlot(WEDNESDAY, time(9, 0))]

    dates = generate_schedule_dates(date(2026, 3, 4), slots, 3)

    assert dates == [
        datetime(2026, 3, 4, 9, 0),
        datetime(2026, 3, 4, 18, 0),
        datetime(2026, 3, 11, 9, 0),
    ]


def test_generate_schedule_dates_handles_empty_input():
    assert generate_schedule_dates(MONDAY, [], 5) == []
    assert generate_schedule_dates(MONDAY, [WeeklySlot(SUNDAY, time(10, 0))], 0) == []
    duplicated = [WeeklySlot(SUNDAY, time(10, 0)), WeeklySlot(SUNDAY, time(10, 0))]
    assert len(generate_schedule_dates(MONDAY, duplicated, 2)) == 2


def test_add_package_credits_wallet_and_generates_lessons(db, make_teacher, make_student):
    teacher = make_teacher()
    student = make_student()

    purchase = add_package(
        db,
        student.id,
        amount=Decimal("480"),
        lessons_purchased=8,
        start_date=MONDAY,
        lesson_duration=60,
        teacher_id=teacher.id,
        weekly_schedule=[WeeklySlot(SUNDAY, time(17, 0)), WeeklySlot(WEDNESDAY, time(17, 0))],
    )

    package = purchase.package
    assert purchase.old_wallet == 0
    assert purchase.result.wallet_balance == 8
    assert purchase.result.status == StudentStatus.ACTIVE
    assert package.status == PackageStatus.ACTIVE
    assert package.lessons_used == 0
    assert package.next_payment_date == date(2026, 4, 1)
    assert package.is_renewal is False
    assert len(purchase.lessons) == 8
    assert db.query(LessonSchedule).filter(LessonSchedule.package_id == package.id).count() == 2

    lessons = db.query(ScheduledLesson).order_by(ScheduledLesson.scheduled_date).all()
    assert lessons[0].scheduled_date == date(2026, 3, 4)
    assert all(l.teacher_id == teacher.id and l.duration_minutes == 60 for l in lessons)

    db.expire_all()
    assert student.teacher_id == teacher.id
    assert student.current_package_id == package.id
    assert student.total_paid == Decimal("480")
    assert student.number_of_renewals == 1
    entry = db.query(WalletLedger).one()
    assert entry.event == LedgerEvent.PACKAGE_ADDED
    assert entry.package_id == package.id
    assert entry.lessons == 8


def test_add_package_pays_debt_first(db, make_student):
    student = make_student(debt=3)

    purchase = add_package(db, student.id, amount=Decimal("400"), lessons_purchased=8, start_date=MONDAY)

    assert (purchase.result.wallet_balance, purchase.result.debt_lessons) == (5, 0)
    assert purchase.result.debt_covered == 3
    assert purchase.package.debt_covered == 3
    assert purchase.package.lessons_used == 3


def test_package_swallowed_by_debt_is_completed(db, make_student):
    student = make_student(debt=4)

    purchase = add_package(db, student.id, amount=Decimal("100"), lessons_purchased=2, start_date=MONDAY)

    assert (purchase.result.wallet_balance, purchase.result.debt_lessons) == (0, 2)
    assert purchase.result.status == StudentStatus.BLOCKED
    assert purchase.package.status == PackageStatus.COMPLETED
    assert purchase.package.completed_date == MONDAY


def test_second_package_is_a_renewal(db, make_student):
    student = make_student()
    add_package(db, student.id, amount=Decimal("100"), lessons_purchased=2)
    second = add_package(db, student.id, amount=Decimal("150"), lessons_purchased=3)

    assert second.package.is_renewal is True
    assert second.old_wallet == 2
    assert [p.id for p in list_packages(db, student.id)] == [second.package.id, second.package.id - 1]
    db.expire_all()
    assert student.total_paid == Decimal("250")


@pytest.mark.parametrize(
    "kwargs,status_code",
    [
        ({"amount": Decimal("-1")}, 400),
        ({"weekly_schedule": [WeeklySlot(SUNDAY, time(9, 0))]}, 400),
        ({"teacher_id": 999}, 404),
    ],
)
def test_add_package_validates_input(db, make_student, kwargs, status_code):
    student = make_student()
    params = {"amount": Decimal("100"), "lessons_purchased": 2}
    params.update(kwargs)

    with pytest.raises(HTTPException) as exc:
        add_package(db, student.id, **params)

    assert exc.value.status_code == status_code
    assert db.query(WalletLedger).count() == 0


def test_add_package_rejects_out_of_range_day(db, make_teacher, make_student):
    teacher = make_teacher()
    student = make_student()

    with pytest.raises(HTTPException) as exc:
        add_package(
            db,
            student.id,
            amount=Decimal("100"),
            lessons_purchased=2,
            teacher_id=teacher.id,
            weekly_schedule=[WeeklySlot(7, time(9, 0))],
        )
    assert exc.value.status_code == 400


def test_add_package_for_missing_student_is_404(db):
    with pytest.raises(HTTPException) as exc:
        add_package(db, 12345, amount=Decimal("100"), lessons_purchased=2)
    assert exc.value.status_code == 404


def test_grant_free_lessons_credits_wallet_only(db, make_student):
    student = make_student(wallet=0, debt=2)

    result = grant_free_lessons(db, student.id, lessons=3, reason="Referral bonus")

    assert (result.wallet_balance, result.debt_lessons) == (3, 2)
    assert result.status == StudentStatus.ACTIVE
    entry = db.query(WalletLedger).one()
    assert entry.event == LedgerEvent.FREE_LESSONS_GRANTED
    assert entry.description == "Free lessons: Referral bonus"


def test_grant_free_lessons_requires_reason_and_non_negative_count(db, make_student):
    student = make_student()

    with pytest.raises(HTTPException) as exc:
        grant_free_lessons(db, student.id, lessons=1, reason="  ")
    assert exc.value.status_code == 400

    with pytest.raises(InvalidLedgerEventError):
        grant_free_lessons(db, student.id, lessons=-1, reason="Make-up")
    db.expire_all()
    assert student.wallet_balance == 0
