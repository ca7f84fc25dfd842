from decimal import Decimal
from academy.core.database import SessionLocal
from academy.models import Student, Teacher
from academy.services.ledger import derive_status


SAMPLE_TEACHERS = [
    {"name": "Amina Yusuf", "email": "amina@example.com", "rate_per_lesson": Decimal("120")},
    {"name": "Omar Haddad", "email": "omar@example.com", "rate_per_lesson": Decimal("100")},
]

SAMPLE_STUDENTS = [
    {"name": "Lina Saleh", "phone": "0500000001", "teacher_email": "amina@example.com"},
    {"name": "Yousef Karim", "phone": "0500000002", "teacher_email": "omar@example.com"},
]


def main():
    db = SessionLocal()
    try:
        for teacher in SAMPLE_TEACHERS:
            if not db.query(Teacher).filter(Teacher.email == teacher["email"]).first():
                db.add(Teacher(**teacher))
        db.flush()
        for student in SAMPLE_STUDENTS:
            if db.query(Student).filter(Student.phone == student["phone"]).first():
                continue
            teacher = db.query(Teacher).filter(Teacher.email == student["teacher_email"]).first()
            db.add(
                Student(
                    name=student["name"],
                    phone=student["phone"],
                    teacher_id=teacher.id if teacher else None,
                    wallet_balance=0,
                    debt_lessons=0,
                    status=derive_status(0, 0),
                )
            )
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
