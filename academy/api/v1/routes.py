from fastapi import APIRouter
from academy.api.v1.endpoints import teachers, students, lessons, reports

router = APIRouter()

router.include_router(teachers.router, prefix="/teachers", tags=["teachers"])
router.include_router(students.router, prefix="/students", tags=["students"])
router.include_router(lessons.router, prefix="/lessons", tags=["lessons"])
router.include_router(reports.router, prefix="/reports", tags=["reports"])
