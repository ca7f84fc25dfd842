"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

STUDENT_STATUS = ("ACTIVE", "GRACE", "BLOCKED")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "teachers",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("rate_per_lesson", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_teachers_active", "teachers", ["is_active"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("parent_phone", sa.String(32), nullable=True),
        sa.Column("teacher_id", sa.Integer, sa.ForeignKey("teachers.id"), nullable=True),
        sa.Column("current_package_id", sa.Integer, nullable=True),
        sa.Column("wallet_balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("debt_lessons", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.Enum(*STUDENT_STATUS, name="student_status"), nullable=False, server_default="GRACE"),
        sa.Column("total_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("number_of_renewals", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_students_status", "students", ["status"], unique=False)
    op.create_index("ix_students_teacher_id", "students", ["teacher_id"], unique=False)

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("student_id", sa.Integer, sa.ForeignKey("students.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("lessons_purchased", sa.Integer, nullable=False),
        sa.Column("lessons_used", sa.Integer, nullable=False, server_default="0"),
        sa.Column("debt_covered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("lesson_duration", sa.Integer, nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("next_payment_date", sa.Date, nullable=True),
        sa.Column("is_renewal", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.Enum("ACTIVE", "COMPLETED", name="package_status"), nullable=False),
        sa.Column("completed_date", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_packages_student_status", "packages", ["student_id", "status"], unique=False)

    op.create_table(
        "lesson_schedules",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("package_id", sa.Integer, sa.ForeignKey("packages.id"), nullable=False),
        sa.Column("day_of_week", sa.Integer, nullable=False),
        sa.Column("time_slot", sa.Time, nullable=False),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_lesson_schedules_day_of_week"),
        *_timestamps(),
    )
    op.create_index("ix_lesson_schedules_package_id", "lesson_schedules", ["package_id"], unique=False)

    op.create_table(
        "scheduled_lessons",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("student_id", sa.Integer, sa.ForeignKey("students.id"), nullable=False),
        sa.Column("teacher_id", sa.Integer, sa.ForeignKey("teachers.id"), nullable=True),
        sa.Column("package_id", sa.Integer, sa.ForeignKey("packages.id"), nullable=True),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("scheduled_time", sa.Time, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column(
            "status",
            sa.Enum("SCHEDULED", "COMPLETED", "ABSENT", "CANCELLED", name="lesson_status"),
            nullable=False,
        ),
        sa.Column("charged_to", sa.Enum("WALLET", "DEBT", name="charge_side"), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("marked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_scheduled_lessons_teacher_slot",
        "scheduled_lessons",
        ["teacher_id", "scheduled_date", "scheduled_time"],
        unique=False,
    )
    op.create_index(
        "ix_scheduled_lessons_student_status", "scheduled_lessons", ["student_id", "status"], unique=False
    )

    op.create_table(
        "wallet_ledger",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("student_id", sa.Integer, sa.ForeignKey("students.id"), nullable=False),
        sa.Column(
            "event",
            sa.Enum(
                "LESSON_COMPLETED",
                "LESSON_ABSENT",
                "LESSON_CANCELLED",
                "SCHEDULED_LESSON_DELETED",
                "COMPLETED_LESSON_DELETED",
                "ABSENT_OR_CANCELLED_DELETED",
                "LESSON_RESCHEDULED",
                "PACKAGE_ADDED",
                "FREE_LESSONS_GRANTED",
                name="ledger_event",
            ),
            nullable=False,
        ),
        sa.Column("lessons", sa.Integer, nullable=True),
        sa.Column("wallet_before", sa.Integer, nullable=False),
        sa.Column("wallet_after", sa.Integer, nullable=False),
        sa.Column("debt_before", sa.Integer, nullable=False),
        sa.Column("debt_after", sa.Integer, nullable=False),
        sa.Column(
            "status_after",
            postgresql.ENUM(*STUDENT_STATUS, name="student_status", create_type=False),
            nullable=False,
        ),
        sa.Column("reference", sa.String(64), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("scheduled_lesson_id", sa.Integer, nullable=True),
        sa.Column("package_id", sa.Integer, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_wallet_ledger_student_event", "wallet_ledger", ["student_id", "event"], unique=False)
    op.create_index("ix_wallet_ledger_reference", "wallet_ledger", ["reference"], unique=False)


def downgrade():
    op.drop_table("wallet_ledger")
    op.drop_table("scheduled_lessons")
    op.drop_table("lesson_schedules")
    op.drop_table("packages")
    op.drop_table("students")
    op.drop_table("teachers")
    op.execute("DROP TYPE IF EXISTS ledger_event")
    op.execute("DROP TYPE IF EXISTS charge_side")
    op.execute("DROP TYPE IF EXISTS lesson_status")
    op.execute("DROP TYPE IF EXISTS package_status")
    op.execute("DROP TYPE IF EXISTS student_status")
