from academy.models.teacher import Teacher
from academy.models.student import Student
from academy.models.package import Package, PackageStatus
from academy.models.lesson_schedule import LessonSchedule
from academy.models.scheduled_lesson import ScheduledLesson, LessonStatus
from academy.models.wallet_ledger import WalletLedger
from academy.services.ledger import ChargeSide, LedgerEvent, StudentStatus

__all__ = [
    "Teacher",
    "Student",
    "StudentStatus",
    "Package",
    "PackageStatus",
    "LessonSchedule",
    "ScheduledLesson",
    "LessonStatus",
    "WalletLedger",
    "LedgerEvent",
    "ChargeSide",
]
