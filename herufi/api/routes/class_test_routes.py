"""
Class Test Routes (quizzes, CATs, assignments, practicals)

GET /tests - List the teacher's tests with submissions and average marks
POST /tests - Create a test for one of the teacher's subject assignments
PUT /tests/{test_id} - Update test
DELETE /tests/{test_id} - Delete test (marks cascade)
GET /tests/{test_id}/results - Marking sheet
PUT /tests/{test_id}/results - Save marks
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_stream, set_clause, update_fields
from herufi.core.auth import get_current_teacher
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.services.grading import count_invalid_scores, grade_for_marks
from herufi.schemas.schemas import (
    ClassTestCreate, ClassTestUpdate, ClassTestResponse, TestMarksUpload,
    TestSheetRow, MessageResponse
)

router = APIRouter(prefix="/tests", tags=["Class Tests"])
logger = get_logger(__name__)

TEST_SELECT = """
    SELECT t.id, t.name, t.type, t.max_marks, t.subject_id, sub.name AS subject_name,
           t.class_id, c.name AS class_name, t.stream_id, t.created_at,
           COUNT(tr.id) AS submissions, AVG(tr.marks) AS average_marks
    FROM tests t
    JOIN subjects sub ON sub.id = t.subject_id
    JOIN classes c ON c.id = t.class_id
    LEFT JOIN test_results tr ON tr.test_id = t.id
"""
TEST_GROUP_BY = " GROUP BY t.id, sub.name, c.name"


def fetch_own_test(db, test_id: str, teacher_id: str) -> dict:
    """A test created by this teacher, or 404."""
    row = fetch_one(
        db,
        TEST_SELECT + " WHERE t.id = :id AND t.teacher_id = :teacher_id" + TEST_GROUP_BY,
        {"id": test_id, "teacher_id": teacher_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Test not found")
    return row


@router.get("", response_model=List[ClassTestResponse])
async def list_tests(teacher: dict = Depends(get_current_teacher)):
    """The teacher's tests, newest first."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            TEST_SELECT + " WHERE t.teacher_id = :teacher_id" + TEST_GROUP_BY + " ORDER BY t.created_at DESC",
            {"teacher_id": teacher["teacher_id"]}
        )
    return [ClassTestResponse(**r) for r in rows]


@router.post("", response_model=ClassTestResponse, status_code=201)
async def create_test(data: ClassTestCreate, teacher: dict = Depends(get_current_teacher)):
    """
    Create a test.

    The subject and class come from one of the teacher's subject assignments.
    A stream may narrow the test to part of the class.
    """
    with get_db_session() as db:
        assignment = fetch_one(
            db,
            "SELECT subject_id, class_id FROM teacher_subjects WHERE id = :id AND teacher_id = :teacher_id",
            {"id": data.teacher_subject_id, "teacher_id": teacher["teacher_id"]}
        )
        if not assignment:
            raise HTTPException(status_code=404, detail="Subject assignment not found")

        if data.stream_id:
            require_stream(db, data.stream_id, teacher["school_id"], class_id=str(assignment["class_id"]))

        result = db.execute(
            text("""
                INSERT INTO tests (school_id, name, type, subject_id, teacher_id, class_id, stream_id, max_marks)
                VALUES (:school_id, :name, :type, :subject_id, :teacher_id, :class_id, :stream_id, :max_marks)
                RETURNING id
            """),
            {
                "school_id": teacher["school_id"],
                "name": data.name.strip(),
                "type": data.type.value,
                "subject_id": assignment["subject_id"],
                "teacher_id": teacher["teacher_id"],
                "class_id": assignment["class_id"],
                "stream_id": data.stream_id,
                "max_marks": data.max_marks,
            }
        )
        test_id = str(result.fetchone()[0])
        row = fetch_own_test(db, test_id, teacher["teacher_id"])

    logger.info("test_created", teacher_id=teacher["teacher_id"], test_id=test_id)
    return ClassTestResponse(**row)


@router.put("/{test_id}", response_model=ClassTestResponse)
async def update_test(test_id: str, data: ClassTestUpdate, teacher: dict = Depends(get_current_teacher)):
    fields = update_fields(data)
    with get_db_session() as db:
        current = fetch_own_test(db, test_id, teacher["teacher_id"])

        if fields.get("max_marks"):
            highest = fetch_one(
                db, "SELECT MAX(marks) AS highest FROM test_results WHERE test_id = :id", {"id": test_id}
            )
            if highest and highest["highest"] is not None and float(highest["highest"]) > fields["max_marks"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Max marks cannot be below an existing mark ({float(highest['highest'])})"
                )

        if fields:
            db.execute(
                text(f"UPDATE tests SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": test_id}
            )
            current = fetch_own_test(db, test_id, teacher["teacher_id"])

    return ClassTestResponse(**current)


@router.delete("/{test_id}", response_model=MessageResponse)
async def delete_test(test_id: str, teacher: dict = Depends(get_current_teacher)):
    with get_db_session() as db:
        fetch_own_test(db, test_id, teacher["teacher_id"])
        db.execute(text("DELETE FROM tests WHERE id = :id"), {"id": test_id})

    logger.info("test_deleted", teacher_id=teacher["teacher_id"], test_id=test_id)
    return MessageResponse(message="Test deleted successfully")


@router.get("/{test_id}/results", response_model=List[TestSheetRow])
async def get_test_results(test_id: str, teacher: dict = Depends(get_current_teacher)):
    """Students the test applies to (its stream, or the whole class) with any saved marks."""
    with get_db_session() as db:
        test = fetch_own_test(db, test_id, teacher["teacher_id"])
        rows = fetch_all(
            db,
            """
            SELECT s.id AS student_id, s.admission_number, s.first_name, s.last_name,
                   tr.marks, tr.grade
            FROM students s
            JOIN streams st ON st.id = s.stream_id
            LEFT JOIN test_results tr ON tr.student_id = s.id AND tr.test_id = :test_id
            WHERE st.class_id = :class_id
              AND (CAST(:stream_id AS UUID) IS NULL OR s.stream_id = CAST(:stream_id AS UUID))
            ORDER BY s.admission_number
            """,
            {"test_id": test_id, "class_id": test["class_id"], "stream_id": test["stream_id"]}
        )
    return [TestSheetRow(**r) for r in rows]


@router.put("/{test_id}/results", response_model=MessageResponse)
async def save_test_results(test_id: str, data: TestMarksUpload, teacher: dict = Depends(get_current_teacher)):
    """
    Save marks for a test.

    Blank marks are skipped; every mark must be within 0 and the test's max_marks.
    Only students of the test's class (or its stream) can be marked.
    """
    with get_db_session() as db:
        test = fetch_own_test(db, test_id, teacher["teacher_id"])
        max_marks = float(test["max_marks"])

        invalid = count_invalid_scores((entry.marks for entry in data.marks), max_marks)
        if invalid:
            raise HTTPException(status_code=400, detail=f"Please fix {invalid} invalid marks before saving")

        entries = [entry for entry in data.marks if entry.marks is not None]
        if not entries:
            raise HTTPException(status_code=400, detail="No marks to save")

        student_ids = list({entry.student_id for entry in entries})
        known = fetch_all(
            db,
            """
            SELECT s.id FROM students s
            JOIN streams st ON st.id = s.stream_id
            WHERE s.school_id = :school_id
              AND st.class_id = :class_id
              AND (CAST(:stream_id AS UUID) IS NULL OR s.stream_id = CAST(:stream_id AS UUID))
              AND s.id = ANY(CAST(:ids AS UUID[]))
            """,
            {
                "school_id": teacher["school_id"],
                "class_id": test["class_id"],
                "stream_id": test["stream_id"],
                "ids": student_ids,
            }
        )
        if len(known) != len(student_ids):
            raise HTTPException(status_code=404, detail="Student not found in this test's class")

        db.execute(
            text("""
                INSERT INTO test_results (student_id, test_id, marks, grade)
                VALUES (:student_id, :test_id, :marks, :grade)
                ON CONFLICT (student_id, test_id) DO UPDATE SET
                    marks = EXCLUDED.marks,
                    grade = EXCLUDED.grade,
                    updated_at = NOW()
            """),
            [
                {
                    "student_id": entry.student_id,
                    "test_id": test_id,
                    "marks": entry.marks,
                    "grade": grade_for_marks(entry.marks, max_marks),
                }
                for entry in entries
            ]
        )

    logger.info("test_marks_saved", test_id=test_id, count=len(entries))
    return MessageResponse(message=f"Saved {len(entries)} marks")
