"""
Student Dashboard Routes

GET /dashboard/student - Profile with school, stream, class and subject teachers
GET /dashboard/student/analytics - Performance summary across exams and tests
GET /dashboard/student/results - Exam results grouped per examination
GET /dashboard/student/tests - Test results with percentage and grade
GET /dashboard/student/examinations - School examinations with a has_results flag
"""

from fastapi import APIRouter, Depends
from typing import List

from herufi.api.lookups import get_school
from herufi.core.auth import get_current_student
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.services.analytics_service import group_exam_results, student_performance
from herufi.services.grading import grade_for_marks, percentage
from herufi.schemas.schemas import (
    StudentProfileResponse, StudentAnalyticsResponse, ExamResultGroup,
    StudentTestResult, StudentExamination
)

router = APIRouter(prefix="/dashboard/student", tags=["Dashboards"])

EXAM_RESULTS_SQL = """
    SELECT r.examination_id, e.name AS examination_name, e.year, tm.name AS term_name,
           sub.name AS subject_name, r.score, r.grade
    FROM results r
    JOIN examinations e ON e.id = r.examination_id
    LEFT JOIN terms tm ON tm.id = e.term_id
    JOIN subjects sub ON sub.id = r.subject_id
    WHERE r.student_id = :student_id
    ORDER BY e.year DESC, e.created_at DESC, sub.name
"""

TEST_RESULTS_SQL = """
    SELECT tr.test_id, t.name AS test_name, t.type, sub.name AS subject_name,
           tr.marks, t.max_marks, tr.created_at
    FROM test_results tr
    JOIN tests t ON t.id = tr.test_id
    JOIN subjects sub ON sub.id = t.subject_id
    WHERE tr.student_id = :student_id
    ORDER BY tr.created_at DESC
"""


@router.get("", response_model=StudentProfileResponse)
async def student_dashboard(student: dict = Depends(get_current_student)):
    """The student's profile and who teaches each subject in their class."""
    with get_db_session() as db:
        profile = fetch_one(
            db,
            """
            SELECT s.id, s.admission_number, s.first_name, s.last_name, s.stream_id,
                   st.name AS stream_name, c.id AS class_id, c.name AS class_name,
                   s.date_of_birth, s.gender, s.guardian_name, s.guardian_phone, s.address, s.created_at
            FROM students s
            LEFT JOIN streams st ON st.id = s.stream_id
            LEFT JOIN classes c ON c.id = st.class_id
            WHERE s.id = :student_id
            """,
            {"student_id": student["student_id"]}
        )
        school = get_school(db, student["school_id"])

        teachers = []
        if profile["class_id"]:
            teachers = fetch_all(
                db,
                """
                SELECT sub.name AS subject_name, t.first_name || ' ' || t.last_name AS teacher_name
                FROM teacher_subjects ts
                JOIN subjects sub ON sub.id = ts.subject_id
                JOIN teachers t ON t.id = ts.teacher_id
                WHERE ts.class_id = :class_id
                ORDER BY sub.name
                """,
                {"class_id": profile["class_id"]}
            )

    return StudentProfileResponse(student=profile, school=school, teachers=teachers)


@router.get("/analytics", response_model=StudentAnalyticsResponse)
async def student_analytics(student: dict = Depends(get_current_student)):
    """Average, highest and passing rate over every exam score and test percentage."""
    params = {"student_id": student["student_id"]}
    with get_db_session() as db:
        exam_results = fetch_all(db, EXAM_RESULTS_SQL, params)
        test_results = fetch_all(db, TEST_RESULTS_SQL, params)

    return StudentAnalyticsResponse(**student_performance(exam_results, test_results))


@router.get("/results", response_model=List[ExamResultGroup])
async def student_results(student: dict = Depends(get_current_student)):
    with get_db_session() as db:
        rows = fetch_all(db, EXAM_RESULTS_SQL, {"student_id": student["student_id"]})
    return [ExamResultGroup(**group) for group in group_exam_results(rows)]


@router.get("/tests", response_model=List[StudentTestResult])
async def student_tests(student: dict = Depends(get_current_student)):
    with get_db_session() as db:
        rows = fetch_all(db, TEST_RESULTS_SQL, {"student_id": student["student_id"]})

    return [
        StudentTestResult(
            **r,
            percentage=round(percentage(r["marks"], r["max_marks"]), 1),
            grade=grade_for_marks(float(r["marks"]), float(r["max_marks"]))
        )
        for r in rows
    ]


@router.get("/examinations", response_model=List[StudentExamination])
async def student_examinations(student: dict = Depends(get_current_student)):
    """School examinations; has_results tells whether this student has any score in it."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT e.id, e.name, e.term_id, t.name AS term_name, e.year,
                   e.start_date, e.end_date, e.created_at,
                   EXISTS (
                       SELECT 1 FROM results r
                       WHERE r.examination_id = e.id AND r.student_id = :student_id
                   ) AS has_results
            FROM examinations e LEFT JOIN terms t ON t.id = e.term_id
            WHERE e.school_id = :school_id
            ORDER BY e.year DESC, e.created_at DESC
            """,
            {"student_id": student["student_id"], "school_id": student["school_id"]}
        )
    return [StudentExamination(**r) for r in rows]
