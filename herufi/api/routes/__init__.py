"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from herufi.api.routes.auth_routes import router as auth_router
from herufi.api.routes.school_routes import router as school_router
from herufi.api.routes.student_routes import router as student_router
from herufi.api.routes.teacher_routes import router as teacher_router
from herufi.api.routes.class_routes import router as class_router
from herufi.api.routes.subject_routes import router as subject_router
from herufi.api.routes.term_routes import router as term_router
from herufi.api.routes.examination_routes import router as examination_router
from herufi.api.routes.result_routes import router as result_router
from herufi.api.routes.class_test_routes import router as class_test_router
from herufi.api.routes.assessment_routes import router as assessment_router
from herufi.api.routes.timetable_routes import router as timetable_router
from herufi.api.routes.suggestion_routes import router as suggestion_router
from herufi.api.routes.admin_dashboard_routes import router as admin_dashboard_router
from herufi.api.routes.teacher_dashboard_routes import router as teacher_dashboard_router
from herufi.api.routes.student_dashboard_routes import router as student_dashboard_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(school_router)
api_router.include_router(student_router)
api_router.include_router(teacher_router)
api_router.include_router(class_router)
api_router.include_router(subject_router)
api_router.include_router(term_router)
api_router.include_router(examination_router)
api_router.include_router(result_router)
api_router.include_router(class_test_router)
api_router.include_router(assessment_router)
api_router.include_router(timetable_router)
api_router.include_router(suggestion_router)
api_router.include_router(admin_dashboard_router)
api_router.include_router(teacher_dashboard_router)
api_router.include_router(student_dashboard_router)
