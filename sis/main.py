from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sis.api.v1.academic_years.router import router as academic_years_router
from sis.api.v1.announcements.router import router as announcements_router
from sis.api.v1.assignments.router import router as assignments_router
from sis.api.v1.attendance.router import router as attendance_router
from sis.api.v1.classes.router import router as classes_router
from sis.api.v1.enrollments.router import router as enrollments_router
from sis.api.v1.grades.router import router as grades_router
from sis.api.v1.parent_students.router import router as parent_students_router
from sis.api.v1.schedules.router import router as schedules_router
from sis.api.v1.submissions.router import router as submissions_router
from sis.api.v1.teacher_subjects.router import router as teacher_subjects_router
from sis.core.logging import configure_logger


def create_app() -> FastAPI:
    configure_logger()
    app = FastAPI(title="School Information System - Academic Core")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(academic_years_router)
    app.include_router(classes_router)
    app.include_router(enrollments_router)
    app.include_router(schedules_router)
    app.include_router(grades_router)
    app.include_router(assignments_router)
    app.include_router(submissions_router)
    app.include_router(attendance_router)
    app.include_router(announcements_router)
    app.include_router(parent_students_router)
    app.include_router(teacher_subjects_router)

    return app


app = create_app()
