"""
Class Routes

GET /classes - List classes with stream count and class teacher
GET /classes/{class_id} - Get class
POST /classes - Create class
PUT /classes/{class_id} - Update class
DELETE /classes/{class_id} - Delete class (streams cascade)
GET /classes/{class_id}/streams - List streams
POST /classes/{class_id}/streams - Add stream
DELETE /classes/{class_id}/streams/{stream_id} - Remove stream
GET /classes/{class_id}/subject-assignments - Teacher/subject assignments of a class
PUT /classes/{class_id}/subject-assignments - Replace all assignments of a class
GET /classes/{class_id}/all-results - Class teacher gradebook
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_class, require_stream, require_teacher, set_clause, update_fields
from herufi.core.auth import get_current_admin, get_current_teacher
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.schemas.schemas import (
    ClassCreate, ClassUpdate, ClassResponse, StreamCreate, StreamResponse,
    SubjectAssignmentUpdate, SubjectAssignmentResponse, ClassAllResultsResponse,
    MessageResponse
)

router = APIRouter(prefix="/classes", tags=["Classes"])
logger = get_logger(__name__)

CLASS_SELECT = """
    SELECT c.id, c.name, c.grade_level, c.class_teacher_id, c.created_at,
           t.first_name || ' ' || t.last_name AS class_teacher_name,
           (SELECT COUNT(*) FROM streams st WHERE st.class_id = c.id) AS stream_count
    FROM classes c
    LEFT JOIN teachers t ON t.id = c.class_teacher_id
"""


def fetch_class(db, class_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        CLASS_SELECT + " WHERE c.id = :id AND c.school_id = :school_id",
        {"id": class_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Class not found")
    return row


def fetch_assignments(db, class_id: str) -> list:
    return fetch_all(
        db,
        """
        SELECT ts.id, ts.teacher_id, t.first_name || ' ' || t.last_name AS teacher_name,
               ts.subject_id, sub.name AS subject_name
        FROM teacher_subjects ts
        JOIN teachers t ON t.id = ts.teacher_id
        JOIN subjects sub ON sub.id = ts.subject_id
        WHERE ts.class_id = :class_id
        ORDER BY sub.name, teacher_name
        """,
        {"class_id": class_id}
    )


# ============================================================
# CLASSES
# ============================================================

@router.get("", response_model=List[ClassResponse])
async def list_classes(admin: dict = Depends(get_current_admin)):
    """List classes ordered by grade level then name."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            CLASS_SELECT + " WHERE c.school_id = :school_id ORDER BY c.grade_level NULLS LAST, c.name",
            {"school_id": admin["school_id"]}
        )
    return [ClassResponse(**r) for r in rows]


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(class_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        row = fetch_class(db, class_id, admin["school_id"])
    return ClassResponse(**row)


@router.post("", response_model=ClassResponse, status_code=201)
async def create_class(data: ClassCreate, admin: dict = Depends(get_current_admin)):
    """Create a class. The class teacher, if given, must teach at this school."""
    school_id = admin["school_id"]
    with get_db_session() as db:
        if data.class_teacher_id:
            require_teacher(db, data.class_teacher_id, school_id)

        result = db.execute(
            text("""
                INSERT INTO classes (school_id, name, grade_level, class_teacher_id)
                VALUES (:school_id, :name, :grade_level, :class_teacher_id)
                RETURNING id
            """),
            {
                "school_id": school_id,
                "name": data.name.strip(),
                "grade_level": data.grade_level,
                "class_teacher_id": data.class_teacher_id,
            }
        )
        class_id = str(result.fetchone()[0])
        row = fetch_class(db, class_id, school_id)

    logger.info("class_created", school_id=school_id, class_id=class_id)
    return ClassResponse(**row)


@router.put("/{class_id}", response_model=ClassResponse)
async def update_class(class_id: str, data: ClassUpdate, admin: dict = Depends(get_current_admin)):
    school_id = admin["school_id"]
    fields = update_fields(data)

    with get_db_session() as db:
        require_class(db, class_id, school_id)
        if fields.get("class_teacher_id"):
            require_teacher(db, fields["class_teacher_id"], school_id)

        if fields:
            db.execute(
                text(f"UPDATE classes SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": class_id}
            )
        row = fetch_class(db, class_id, school_id)

    return ClassResponse(**row)


@router.delete("/{class_id}", response_model=MessageResponse)
async def delete_class(class_id: str, admin: dict = Depends(get_current_admin)):
    """Delete a class. Its streams, assignments and tests cascade."""
    with get_db_session() as db:
        require_class(db, class_id, admin["school_id"])
        db.execute(text("DELETE FROM classes WHERE id = :id"), {"id": class_id})

    logger.info("class_deleted", school_id=admin["school_id"], class_id=class_id)
    return MessageResponse(message="Class deleted successfully")


# ============================================================
# STREAMS
# ============================================================

@router.get("/{class_id}/streams", response_model=List[StreamResponse])
async def list_streams(class_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_class(db, class_id, admin["school_id"])
        rows = fetch_all(
            db,
            """
            SELECT st.id, st.class_id, st.name,
                   (SELECT COUNT(*) FROM students s WHERE s.stream_id = st.id) AS student_count
            FROM streams st WHERE st.class_id = :class_id ORDER BY st.name
            """,
            {"class_id": class_id}
        )
    return [StreamResponse(**r) for r in rows]


@router.post("/{class_id}/streams", response_model=StreamResponse, status_code=201)
async def add_stream(class_id: str, data: StreamCreate, admin: dict = Depends(get_current_admin)):
    """Add a stream. Stream names are unique within a class."""
    name = data.name.strip()
    with get_db_session() as db:
        require_class(db, class_id, admin["school_id"])
        duplicate = fetch_one(
            db,
            "SELECT id FROM streams WHERE class_id = :class_id AND LOWER(name) = LOWER(:name)",
            {"class_id": class_id, "name": name}
        )
        if duplicate:
            raise HTTPException(status_code=409, detail="Stream already exists in this class")

        result = db.execute(
            text("INSERT INTO streams (class_id, name) VALUES (:class_id, :name) RETURNING id, class_id, name"),
            {"class_id": class_id, "name": name}
        )
        row = dict(result.mappings().first())

    return StreamResponse(**row)


@router.delete("/{class_id}/streams/{stream_id}", response_model=MessageResponse)
async def delete_stream(class_id: str, stream_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_stream(db, stream_id, admin["school_id"], class_id=class_id)
        db.execute(text("DELETE FROM streams WHERE id = :id"), {"id": stream_id})
    return MessageResponse(message="Stream deleted successfully")


# ============================================================
# SUBJECT ASSIGNMENTS
# ============================================================

@router.get("/{class_id}/subject-assignments", response_model=List[SubjectAssignmentResponse])
async def get_subject_assignments(class_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_class(db, class_id, admin["school_id"])
        rows = fetch_assignments(db, class_id)
    return [SubjectAssignmentResponse(**r) for r in rows]


@router.put("/{class_id}/subject-assignments", response_model=List[SubjectAssignmentResponse])
async def replace_subject_assignments(
    class_id: str,
    data: SubjectAssignmentUpdate,
    admin: dict = Depends(get_current_admin)
):
    """
    Replace every teacher/subject assignment of a class.

    All existing assignments are deleted, then one row is inserted per
    (teacher, subject) pair in the request.
    """
    school_id = admin["school_id"]
    pairs = {
        (a.teacher_id, subject_id)
        for a in data.assignments
        for subject_id in a.subject_ids
    }

    with get_db_session() as db:
        require_class(db, class_id, school_id)

        teacher_ids = {teacher_id for teacher_id, _ in pairs}
        subject_ids = {subject_id for _, subject_id in pairs}
        if teacher_ids:
            known = fetch_all(
                db,
                "SELECT id FROM teachers WHERE school_id = :school_id AND id = ANY(CAST(:ids AS UUID[]))",
                {"school_id": school_id, "ids": list(teacher_ids)}
            )
            if len(known) != len(teacher_ids):
                raise HTTPException(status_code=404, detail="Teacher not found")
        if subject_ids:
            known = fetch_all(
                db,
                "SELECT id FROM subjects WHERE school_id = :school_id AND id = ANY(CAST(:ids AS UUID[]))",
                {"school_id": school_id, "ids": list(subject_ids)}
            )
            if len(known) != len(subject_ids):
                raise HTTPException(status_code=404, detail="Subject not found")

        db.execute(text("DELETE FROM teacher_subjects WHERE class_id = :class_id"), {"class_id": class_id})
        if pairs:
            db.execute(
                text("""
                    INSERT INTO teacher_subjects (teacher_id, subject_id, class_id)
                    VALUES (:teacher_id, :subject_id, :class_id)
                """),
                [
                    {"teacher_id": teacher_id, "subject_id": subject_id, "class_id": class_id}
                    for teacher_id, subject_id in sorted(pairs)
                ]
            )
        rows = fetch_assignments(db, class_id)

    logger.info("subject_assignments_replaced", school_id=school_id, class_id=class_id, count=len(pairs))
    return [SubjectAssignmentResponse(**r) for r in rows]


# ============================================================
# CLASS TEACHER GRADEBOOK
# ============================================================

@router.get("/{class_id}/all-results", response_model=ClassAllResultsResponse)
async def get_class_all_results(class_id: str, teacher: dict = Depends(get_current_teacher)):
    """Students, assessments and assessment scores of a class. Class teacher only."""
    with get_db_session() as db:
        class_row = fetch_class(db, class_id, teacher["school_id"])
        if str(class_row["class_teacher_id"]) != teacher["teacher_id"]:
            raise HTTPException(status_code=403, detail="Only the class teacher can view all results")

        students = fetch_all(
            db,
            """
            SELECT s.id, s.admission_number, s.first_name, s.last_name, s.stream_id,
                   st.name AS stream_name, st.class_id, s.gender, s.created_at
            FROM students s JOIN streams st ON st.id = s.stream_id
            WHERE st.class_id = :class_id
            ORDER BY s.admission_number
            """,
            {"class_id": class_id}
        )
        assessments = fetch_all(
            db,
            """
            SELECT a.id, a.class_id, a.subject_id, sub.name AS subject_name, a.term_id, a.name, a.type,
                   a.max_score, a.weight, a.due_date, a.description, a.created_at
            FROM assessments a LEFT JOIN subjects sub ON sub.id = a.subject_id
            WHERE a.class_id = :class_id
            ORDER BY a.created_at
            """,
            {"class_id": class_id}
        )
        results = fetch_all(
            db,
            """
            SELECT sr.id, sr.student_id, sr.assessment_id, sr.score, sr.graded_by, sr.graded_at
            FROM student_results sr JOIN assessments a ON a.id = sr.assessment_id
            WHERE a.class_id = :class_id
            """,
            {"class_id": class_id}
        )

    return ClassAllResultsResponse(
        class_info=class_row,
        students=students,
        assessments=assessments,
        results=results
    )
