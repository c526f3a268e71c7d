"""
Teacher Dashboard Routes

GET /dashboard/teacher - Teacher overview (assignments, classes, students, recent exams)
GET /dashboard/teacher/class-teacher - Classes the teacher leads
GET /dashboard/teacher/examinations - School examinations with result counts
GET /dashboard/teacher/analytics - Performance of the teacher's tests and exam results
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from herufi.api.lookups import get_school
from herufi.core.auth import get_current_teacher
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.services.analytics_service import build_performance_rows, teacher_analytics
from herufi.schemas.schemas import (
    TeacherDashboardResponse, ClassResponse, ExaminationResponse, TeacherAnalyticsResponse
)

router = APIRouter(prefix="/dashboard/teacher", tags=["Dashboards"])

LED_CLASSES_SQL = """
    SELECT c.id, c.name, c.grade_level, c.class_teacher_id, c.created_at,
           (SELECT COUNT(*) FROM streams st WHERE st.class_id = c.id) AS stream_count
    FROM classes c
    WHERE c.class_teacher_id = :teacher_id
    ORDER BY c.name
"""


@router.get("", response_model=TeacherDashboardResponse)
async def teacher_dashboard(teacher: dict = Depends(get_current_teacher)):
    """Everything on the teacher landing page."""
    params = {"teacher_id": teacher["teacher_id"], "school_id": teacher["school_id"]}

    with get_db_session() as db:
        profile = fetch_one(
            db,
            """
            SELECT id, employee_number, first_name, last_name, email, phone, gender,
                   qualification, date_hired, created_at
            FROM teachers WHERE id = :teacher_id
            """,
            params
        )
        school = get_school(db, teacher["school_id"])

        assignments = fetch_all(
            db,
            """
            SELECT ts.id, ts.subject_id, sub.name AS subject_name, ts.class_id, c.name AS class_name
            FROM teacher_subjects ts
            JOIN subjects sub ON sub.id = ts.subject_id
            JOIN classes c ON c.id = ts.class_id
            WHERE ts.teacher_id = :teacher_id
            ORDER BY c.name, sub.name
            """,
            params
        )
        classes_taught = fetch_all(
            db,
            """
            SELECT c.id, c.name, c.grade_level, c.class_teacher_id, c.created_at,
                   (SELECT COUNT(*) FROM streams st WHERE st.class_id = c.id) AS stream_count
            FROM classes c
            WHERE c.id IN (SELECT class_id FROM teacher_subjects WHERE teacher_id = :teacher_id)
            ORDER BY c.name
            """,
            params
        )
        led_classes = fetch_all(db, LED_CLASSES_SQL, params)
        students = fetch_one(
            db,
            """
            SELECT COUNT(*) AS total
            FROM students s JOIN streams st ON st.id = s.stream_id
            WHERE st.class_id IN (SELECT class_id FROM teacher_subjects WHERE teacher_id = :teacher_id)
            """,
            params
        )
        recent_examinations = fetch_all(
            db,
            """
            SELECT e.id, e.name, e.term_id, t.name AS term_name, e.year,
                   e.start_date, e.end_date, e.created_at
            FROM examinations e LEFT JOIN terms t ON t.id = e.term_id
            WHERE e.school_id = :school_id
            ORDER BY e.created_at DESC
            LIMIT 5
            """,
            params
        )

    return TeacherDashboardResponse(
        teacher=profile,
        school=school,
        assignments=assignments,
        classes_taught=classes_taught,
        class_teacher_of=led_classes,
        student_count=int(students["total"]) if students else 0,
        recent_examinations=recent_examinations
    )


@router.get("/class-teacher", response_model=List[ClassResponse])
async def class_teacher_classes(teacher: dict = Depends(get_current_teacher)):
    with get_db_session() as db:
        rows = fetch_all(db, LED_CLASSES_SQL, {"teacher_id": teacher["teacher_id"]})
    return [ClassResponse(**r) for r in rows]


@router.get("/examinations", response_model=List[ExaminationResponse])
async def teacher_examinations(teacher: dict = Depends(get_current_teacher)):
    """School examinations with how many results each already has."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT e.id, e.name, e.term_id, t.name AS term_name, e.year,
                   e.start_date, e.end_date, e.created_at,
                   (SELECT COUNT(*) FROM results r WHERE r.examination_id = e.id) AS result_count
            FROM examinations e LEFT JOIN terms t ON t.id = e.term_id
            WHERE e.school_id = :school_id
            ORDER BY e.year DESC, e.created_at DESC
            """,
            {"school_id": teacher["school_id"]}
        )
    return [ExaminationResponse(**r) for r in rows]


@router.get("/analytics", response_model=TeacherAnalyticsResponse)
async def analytics(
    year: Optional[int] = None,
    term: Optional[str] = None,
    type: Optional[str] = None,
    subject: Optional[str] = None,
    class_name: Optional[str] = Query(None, alias="class"),
    teacher: dict = Depends(get_current_teacher)
):
    """
    Teacher performance analytics.

    One row per test (submissions, average, top and lowest as percentages)
    and one row per exam result entered by the teacher. Filters match the
    values listed in the response's filters field.
    """
    params = {"teacher_id": teacher["teacher_id"]}

    with get_db_session() as db:
        tests = fetch_all(
            db,
            """
            SELECT t.id, t.name, t.type, t.max_marks, t.created_at,
                   sub.name AS subject_name, c.name AS class_name,
                   COALESCE(ARRAY_AGG(tr.marks) FILTER (WHERE tr.id IS NOT NULL), '{}') AS marks
            FROM tests t
            JOIN subjects sub ON sub.id = t.subject_id
            JOIN classes c ON c.id = t.class_id
            LEFT JOIN test_results tr ON tr.test_id = t.id
            WHERE t.teacher_id = :teacher_id
            GROUP BY t.id, sub.name, c.name
            """,
            params
        )
        exam_results = fetch_all(
            db,
            """
            SELECT r.score, r.created_at, sub.name AS subject_name,
                   e.name AS examination_name, e.year, tm.name AS term_name, c.name AS class_name
            FROM results r
            JOIN subjects sub ON sub.id = r.subject_id
            JOIN examinations e ON e.id = r.examination_id
            LEFT JOIN terms tm ON tm.id = e.term_id
            JOIN students s ON s.id = r.student_id
            LEFT JOIN streams st ON st.id = s.stream_id
            LEFT JOIN classes c ON c.id = st.class_id
            WHERE r.teacher_id = :teacher_id
            """,
            params
        )

    rows = build_performance_rows(tests, exam_results)
    return TeacherAnalyticsResponse(**teacher_analytics(
        rows, year=year, term=term, type=type, subject=subject, class_name=class_name
    ))
