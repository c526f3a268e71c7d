"""
Herufi School Portal - Main Application

FastAPI backend with:
- PostgreSQL for all school data (raw SQL through SQLAlchemy)
- JWT authentication with role-based portals (admin, teacher, student)
- CSV/XLSX batch import of students and teachers
- Dashboards and performance analytics

Run: uvicorn herufi.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from herufi import __version__
from herufi.api.routes import api_router
from herufi.core.config import get_settings
from herufi.core.errors import register_exception_handlers
from herufi.core.logging import setup_logging, get_logger
from herufi.db.postgres import test_postgres_connection

settings = get_settings()
setup_logging(settings)
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Herufi School Portal",
    description="""
    School management API.

    ## Features
    - **Authentication**: School registration, email login for staff, admission-number login for students
    - **Administration**: Students, teachers, classes, streams, subjects, terms, examinations
    - **Batch import**: Students and teachers from CSV or XLSX
    - **Results**: Exam score entry, class tests, class-teacher assessments
    - **Timetables**: Weekly slots per class stream
    - **Dashboards**: Admin, teacher and student views with analytics
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Herufi School Portal", "docs": "/docs"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    postgres_ok = test_postgres_connection()
    return {
        "status": "healthy" if postgres_ok else "degraded",
        "postgres": "connected" if postgres_ok else "disconnected"
    }
