"""Lesson-credit ledger for student accounts.

Pure arithmetic over ``(wallet_balance, debt_lessons)``. Callers own the
persistence and the transaction around it (see ``academy.services.wallet``).
"""

import enum
from dataclasses import dataclass
from typing import Optional

ACTIVE_WALLET_THRESHOLD = 3
BLOCKED_DEBT_THRESHOLD = 2


class StudentStatus(str, enum.Enum):
    ACTIVE = "Active"
    GRACE = "Grace"
    BLOCKED = "Blocked"


class ChargeSide(str, enum.Enum):
    WALLET = "wallet"
    DEBT = "debt"


class LedgerEvent(str, enum.Enum):
    LESSON_COMPLETED = "lesson_completed"
    LESSON_ABSENT = "lesson_absent"
    LESSON_CANCELLED = "lesson_cancelled"
    SCHEDULED_LESSON_DELETED = "scheduled_lesson_deleted"
    COMPLETED_LESSON_DELETED = "completed_lesson_deleted"
    ABSENT_OR_CANCELLED_DELETED = "absent_or_cancelled_deleted"
    LESSON_RESCHEDULED = "lesson_rescheduled"
    PACKAGE_ADDED = "package_added"
    FREE_LESSONS_GRANTED = "free_lessons_granted"


# Events that take a lesson count.
GRANT_EVENTS = frozenset({LedgerEvent.PACKAGE_ADDED, LedgerEvent.FREE_LESSONS_GRANTED})
CONSUMING_EVENTS = frozenset({LedgerEvent.LESSON_COMPLETED, LedgerEvent.SCHEDULED_LESSON_DELETED})
NEUTRAL_EVENTS = frozenset(
    {
        LedgerEvent.LESSON_ABSENT,
        LedgerEvent.LESSON_CANCELLED,
        LedgerEvent.ABSENT_OR_CANCELLED_DELETED,
        LedgerEvent.LESSON_RESCHEDULED,
    }
)


class LedgerError(Exception):
    pass


class InvalidLedgerEventError(LedgerError, ValueError):
    pass


@dataclass(frozen=True)
class AccountBalance:
    wallet_balance: int = 0
    debt_lessons: int = 0

    @property
    def status(self) -> StudentStatus:
        return derive_status(self.wallet_balance, self.debt_lessons)

    @property
    def is_consistent(self) -> bool:
        return self.wallet_balance >= 0 and self.debt_lessons >= 0


@dataclass(frozen=True)
class LedgerResult:
    wallet_balance: int
    debt_lessons: int
    status: StudentStatus
    charged_to: Optional[ChargeSide] = None
    debt_covered: int = 0

    @property
    def balance(self) -> AccountBalance:
        return AccountBalance(self.wallet_balance, self.debt_lessons)


def derive_status(wallet_balance: int, debt_lessons: int) -> StudentStatus:
    # Wallet wins: a funded student is Active whatever debt is still on record.
    if wallet_balance >= ACTIVE_WALLET_THRESHOLD:
        return StudentStatus.ACTIVE
    if debt_lessons >= BLOCKED_DEBT_THRESHOLD:
        return StudentStatus.BLOCKED
    return StudentStatus.GRACE


def _coerce_event(event) -> LedgerEvent:
    if isinstance(event, LedgerEvent):
        return event
    try:
        return LedgerEvent(str(event))
    except ValueError:
        raise InvalidLedgerEventError(f"Unknown ledger event: {event!r}") from None


def _validate_lessons(event: LedgerEvent, lessons: Optional[int]) -> int:
    if event not in GRANT_EVENTS:
        if lessons is not None:
            raise InvalidLedgerEventError(f"{event.value} does not take a lesson count")
        return 0
    if lessons is None:
        raise InvalidLedgerEventError(f"{event.value} requires a lesson count")
    if isinstance(lessons, bool) or not isinstance(lessons, int):
        raise InvalidLedgerEventError("Lesson count must be an integer")
    if lessons < 0:
        raise InvalidLedgerEventError("Lesson count cannot be negative")
    return lessons


def _result(wallet: int, debt: int, **extra) -> LedgerResult:
    return LedgerResult(
        wallet_balance=wallet,
        debt_lessons=debt,
        status=derive_status(wallet, debt),
        **extra,
    )


def _consume(wallet: int, debt: int) -> LedgerResult:
    if wallet > 0:
        return _result(wallet - 1, debt, charged_to=ChargeSide.WALLET)
    return _result(wallet, debt + 1, charged_to=ChargeSide.DEBT)


def _refund(wallet: int, debt: int, charged_to: Optional[ChargeSide]) -> LedgerResult:
    if charged_to == ChargeSide.WALLET:
        return _result(wallet + 1, debt, charged_to=ChargeSide.WALLET)
    # Debt side, or unknown: clear debt first; if it has been paid off since,
    # the credit that paid it comes back to the wallet.
    if debt > 0:
        return _result(wallet, debt - 1, charged_to=ChargeSide.DEBT)
    return _result(wallet + 1, debt, charged_to=ChargeSide.WALLET)


def apply_event(
    account: AccountBalance,
    event,
    lessons: Optional[int] = None,
    charged_to: Optional[ChargeSide] = None,
) -> LedgerResult:
    """Return the account after ``event``.

    ``lessons`` is required for package and free-lesson events and rejected
    for every other event. ``charged_to`` is only read by
    ``COMPLETED_LESSON_DELETED``: it names the side that absorbed the
    original completion so the refund lands on the same side.

    Negative counters coming in are clamped to zero; the ledger never
    carries corrupt input further.
    """
    event = _coerce_event(event)
    lessons = _validate_lessons(event, lessons)
    if charged_to is not None and not isinstance(charged_to, ChargeSide):
        try:
            charged_to = ChargeSide(str(charged_to))
        except ValueError:
            raise InvalidLedgerEventError(f"Unknown charge side: {charged_to!r}") from None

    wallet = max(int(account.wallet_balance or 0), 0)
    debt = max(int(account.debt_lessons or 0), 0)

    if event in CONSUMING_EVENTS:
        return _consume(wallet, debt)
    if event == LedgerEvent.COMPLETED_LESSON_DELETED:
        return _refund(wallet, debt, charged_to)
    if event == LedgerEvent.PACKAGE_ADDED:
        covered = min(debt, lessons)
        return _result(wallet + (lessons - covered), debt - covered, debt_covered=covered)
    if event == LedgerEvent.FREE_LESSONS_GRANTED:
        return _result(wallet + lessons, debt)
    # Absent, cancelled, their deletion and reschedules carry no financial effect.
    return _result(wallet, debt)
