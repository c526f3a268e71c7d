"""
Assessment Routes (class teacher gradebook)

POST /assessments - Create an assessment for a class
PUT /assessments/{assessment_id}/results/{student_id} - Grade one student
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from herufi.api.lookups import require_class, require_subject, require_term
from herufi.core.auth import get_current_teacher
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_one
from herufi.schemas.schemas import (
    AssessmentCreate, AssessmentResponse, AssessmentScore, AssessmentResultResponse
)

router = APIRouter(prefix="/assessments", tags=["Assessments"])
logger = get_logger(__name__)

ASSESSMENT_SELECT = """
    SELECT a.id, a.class_id, a.subject_id, sub.name AS subject_name, a.term_id, a.name, a.type,
           a.max_score, a.weight, a.due_date, a.description, a.created_at
    FROM assessments a LEFT JOIN subjects sub ON sub.id = a.subject_id
"""


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(data: AssessmentCreate, teacher: dict = Depends(get_current_teacher)):
    """Create an assessment for one of the school's classes."""
    school_id = teacher["school_id"]
    with get_db_session() as db:
        require_class(db, data.class_id, school_id)
        require_subject(db, data.subject_id, school_id)
        if data.term_id:
            require_term(db, data.term_id, school_id)

        result = db.execute(
            text("""
                INSERT INTO assessments (
                    school_id, class_id, teacher_id, subject_id, term_id, name, type,
                    max_score, weight, due_date, description
                ) VALUES (
                    :school_id, :class_id, :teacher_id, :subject_id, :term_id, :name, :type,
                    :max_score, :weight, :due_date, :description
                )
                RETURNING id
            """),
            {
                "school_id": school_id,
                "class_id": data.class_id,
                "teacher_id": teacher["teacher_id"],
                "subject_id": data.subject_id,
                "term_id": data.term_id,
                "name": data.name.strip(),
                "type": data.type.value,
                "max_score": data.max_score,
                "weight": data.weight,
                "due_date": data.due_date,
                "description": data.description,
            }
        )
        assessment_id = str(result.fetchone()[0])
        row = fetch_one(db, ASSESSMENT_SELECT + " WHERE a.id = :id", {"id": assessment_id})

    logger.info("assessment_created", school_id=school_id, assessment_id=assessment_id)
    return AssessmentResponse(**row)


@router.put("/{assessment_id}/results/{student_id}", response_model=AssessmentResultResponse)
async def grade_student(
    assessment_id: str,
    student_id: str,
    data: AssessmentScore,
    teacher: dict = Depends(get_current_teacher)
):
    """
    Record a student's score for an assessment (0 to max_score). Class teacher only.

    An existing result is regraded; otherwise a new one is created.
    """
    with get_db_session() as db:
        assessment = fetch_one(
            db,
            "SELECT id, class_id, max_score FROM assessments WHERE id = :id AND school_id = :school_id",
            {"id": assessment_id, "school_id": teacher["school_id"]}
        )
        if not assessment:
            raise HTTPException(status_code=404, detail="Assessment not found")

        class_row = fetch_one(
            db, "SELECT class_teacher_id FROM classes WHERE id = :id", {"id": assessment["class_id"]}
        )
        if not class_row or str(class_row["class_teacher_id"]) != teacher["teacher_id"]:
            raise HTTPException(status_code=403, detail="Only the class teacher can grade this class")

        max_score = float(assessment["max_score"])
        if data.score > max_score:
            raise HTTPException(status_code=400, detail=f"Score must be between 0 and {max_score:g}")

        student = fetch_one(
            db,
            """
            SELECT s.id FROM students s JOIN streams st ON st.id = s.stream_id
            WHERE s.id = :id AND st.class_id = :class_id
            """,
            {"id": student_id, "class_id": assessment["class_id"]}
        )
        if not student:
            raise HTTPException(status_code=404, detail="Student not found in this class")

        params = {
            "student_id": student_id,
            "assessment_id": assessment_id,
            "score": data.score,
            "graded_by": teacher["user_id"],
        }
        existing = fetch_one(
            db,
            "SELECT id FROM student_results WHERE student_id = :student_id AND assessment_id = :assessment_id",
            params
        )
        if existing:
            result = db.execute(
                text("""
                    UPDATE student_results
                    SET score = :score, graded_by = :graded_by, graded_at = NOW(), updated_at = NOW()
                    WHERE id = :id
                    RETURNING id, student_id, assessment_id, score, graded_by, graded_at
                """),
                {**params, "id": existing["id"]}
            )
        else:
            result = db.execute(
                text("""
                    INSERT INTO student_results (student_id, assessment_id, score, graded_by, graded_at)
                    VALUES (:student_id, :assessment_id, :score, :graded_by, NOW())
                    RETURNING id, student_id, assessment_id, score, graded_by, graded_at
                """),
                params
            )
        row = dict(result.mappings().first())

    return AssessmentResultResponse(**row)
