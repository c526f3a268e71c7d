"""
Admin Dashboard Routes

GET /dashboard/admin - School counts plus the most recent students and teachers
"""

from fastapi import APIRouter, Depends

from herufi.api.lookups import get_school
from herufi.core.auth import get_current_admin
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.schemas.schemas import AdminDashboardResponse, AdminStats

router = APIRouter(prefix="/dashboard", tags=["Dashboards"])

RECENT_LIMIT = 5

# Each of these tables carries school_id
COUNTED_TABLES = ("students", "teachers", "classes", "subjects", "examinations")


@router.get("/admin", response_model=AdminDashboardResponse)
async def admin_dashboard(admin: dict = Depends(get_current_admin)):
    """Overview cards and recent activity for the school administrator."""
    school_id = admin["school_id"]
    params = {"school_id": school_id, "limit": RECENT_LIMIT}

    with get_db_session() as db:
        school = get_school(db, school_id)

        counts = {}
        for table in COUNTED_TABLES:
            row = fetch_one(db, f"SELECT COUNT(*) AS total FROM {table} WHERE school_id = :school_id", params)
            counts[table] = int(row["total"]) if row else 0

        recent_students = fetch_all(
            db,
            """
            SELECT s.id, s.admission_number, s.first_name, s.last_name, s.stream_id,
                   st.name AS stream_name, c.id AS class_id, c.name AS class_name, s.created_at
            FROM students s
            LEFT JOIN streams st ON st.id = s.stream_id
            LEFT JOIN classes c ON c.id = st.class_id
            WHERE s.school_id = :school_id
            ORDER BY s.created_at DESC
            LIMIT :limit
            """,
            params
        )
        recent_teachers = fetch_all(
            db,
            """
            SELECT id, employee_number, first_name, last_name, email, phone, gender,
                   qualification, date_hired, created_at
            FROM teachers WHERE school_id = :school_id
            ORDER BY created_at DESC
            LIMIT :limit
            """,
            params
        )

    return AdminDashboardResponse(
        school=school,
        stats=AdminStats(**counts),
        recent_students=recent_students,
        recent_teachers=recent_teachers
    )
