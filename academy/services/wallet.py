import logging
import secrets
import time
from typing import Callable, Optional, TypeVar

from fastapi import HTTPException
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from academy.core.config import get_settings
from academy.models import Student, WalletLedger
from academy.services.ledger import ChargeSide, LedgerEvent, LedgerResult, apply_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE serialization_failure / deadlock_detected (PostgreSQL).
_RETRYABLE_PGCODES = {"40001", "40P01"}


class ConcurrentUpdateError(Exception):
    """The student row kept conflicting; re-read and submit the event again."""

    def __init__(self, student_id: int, attempts: int):
        self.student_id = student_id
        self.attempts = attempts
        super().__init__(f"Student {student_id} is being updated concurrently; retry the request")


def new_reference(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(8)}"


def is_retryable_conflict(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    message = str(orig or exc).lower()
    return "database is locked" in message or "could not serialize access" in message or "deadlock detected" in message


def get_student(db: Session, student_id: int) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def lock_student(db: Session, student_id: int) -> Student:
    # populate_existing: never trust a copy read before the lock was taken.
    student = (
        db.query(Student)
        .filter(Student.id == student_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def run_in_student_transaction(db: Session, student_id: int, work: Callable[[Student], T]) -> T:
    """Run ``work`` against the row-locked student and commit once.

    Each attempt starts from a fresh read, so a retried event is applied to
    the current counters rather than to values held in memory.
    """
    settings = get_settings()
    attempts = max(1, int(settings.ledger_retry_count))
    for attempt in range(1, attempts + 1):
        try:
            student = lock_student(db, student_id)
            result = work(student)
            db.commit()
            return result
        except OperationalError as exc:
            db.rollback()
            if not is_retryable_conflict(exc):
                raise
            if attempt == attempts:
                logger.error("Ledger update for student %s failed after %s attempts: %s", student_id, attempts, exc)
                raise ConcurrentUpdateError(student_id, attempts) from exc
            wait = settings.ledger_retry_backoff_seconds * attempt
            logger.warning(
                "Ledger conflict for student %s (attempt %s/%s), retrying in %.2fs",
                student_id,
                attempt,
                attempts,
                wait,
            )
            time.sleep(wait)
        except Exception:
            db.rollback()
            raise


def post_ledger_event(
    db: Session,
    student: Student,
    event: LedgerEvent,
    *,
    lessons: Optional[int] = None,
    charged_to: Optional[ChargeSide] = None,
    reference: Optional[str] = None,
    description: str = "",
    scheduled_lesson_id: Optional[int] = None,
    package_id: Optional[int] = None,
) -> tuple[LedgerResult, WalletLedger]:
    """Apply ``event`` to a locked student and stage its ledger entry. No commit."""
    before = student.balance()
    if not before.is_consistent:
        logger.warning(
            "Student %s has corrupt ledger counters (wallet=%s, debt=%s); clamping",
            student.id,
            before.wallet_balance,
            before.debt_lessons,
            extra={"student_id": student.id, "event": event.value},
        )

    result = apply_event(before, event, lessons=lessons, charged_to=charged_to)

    student.wallet_balance = result.wallet_balance
    student.debt_lessons = result.debt_lessons
    student.status = result.status

    entry = WalletLedger(
        student_id=student.id,
        event=event,
        lessons=lessons,
        wallet_before=before.wallet_balance,
        wallet_after=result.wallet_balance,
        debt_before=before.debt_lessons,
        debt_after=result.debt_lessons,
        status_after=result.status,
        reference=reference or new_reference("LDG"),
        description=(description or event.value.replace("_", " "))[:255],
        scheduled_lesson_id=scheduled_lesson_id,
        package_id=package_id,
    )
    db.add(entry)

    logger.info(
        "Ledger %s for student %s: wallet %s->%s debt %s->%s status=%s",
        event.value,
        student.id,
        before.wallet_balance,
        result.wallet_balance,
        before.debt_lessons,
        result.debt_lessons,
        result.status.value,
        extra={"student_id": student.id, "event": event.value},
    )
    return result, entry


def apply_student_event(
    db: Session,
    student_id: int,
    event: LedgerEvent,
    *,
    lessons: Optional[int] = None,
    reference: Optional[str] = None,
    description: str = "",
) -> tuple[Student, LedgerResult, WalletLedger]:
    def _work(student: Student):
        result, entry = post_ledger_event(
            db,
            student,
            event,
            lessons=lessons,
            reference=reference,
            description=description,
        )
        return student, result, entry

    student, result, entry = run_in_student_transaction(db, student_id, _work)
    db.refresh(student)
    db.refresh(entry)
    return student, result, entry


def list_ledger_entries(db: Session, student_id: int, limit: int = 50) -> list[WalletLedger]:
    return (
        db.query(WalletLedger)
        .filter(WalletLedger.student_id == student_id)
        .order_by(WalletLedger.id.desc())
        .limit(limit)
        .all()
    )
