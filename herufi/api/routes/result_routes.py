"""
Exam Result Routes

GET /results/sheet - Score entry sheet for a class, examination and subject
PUT /results - Save (upsert) scores for an examination and subject
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_class, require_examination, require_subject, require_teacher
from herufi.core.auth import get_current_staff
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all
from herufi.services.grading import count_invalid_scores, grade_for_score, remarks_for_score
from herufi.schemas.schemas import ResultsUpload, ResultSheetRow, MessageResponse

router = APIRouter(prefix="/results", tags=["Results"])
logger = get_logger(__name__)


@router.get("/sheet", response_model=List[ResultSheetRow])
async def get_result_sheet(
    class_id: str = Query(...),
    examination_id: str = Query(...),
    subject_id: str = Query(...),
    user: dict = Depends(get_current_staff)
):
    """
    Students of every stream of a class, ordered by admission number,
    with the score and grade already saved for this examination and subject.
    """
    school_id = user["school_id"]
    with get_db_session() as db:
        require_class(db, class_id, school_id)
        require_examination(db, examination_id, school_id)
        require_subject(db, subject_id, school_id)

        rows = fetch_all(
            db,
            """
            SELECT s.id AS student_id, s.admission_number, s.first_name, s.last_name,
                   st.name AS stream_name, r.score, r.grade
            FROM students s
            JOIN streams st ON st.id = s.stream_id
            LEFT JOIN results r
                   ON r.student_id = s.id
                  AND r.examination_id = :examination_id
                  AND r.subject_id = :subject_id
            WHERE st.class_id = :class_id
            ORDER BY s.admission_number
            """,
            {"class_id": class_id, "examination_id": examination_id, "subject_id": subject_id}
        )

    return [ResultSheetRow(**r) for r in rows]


@router.put("", response_model=MessageResponse)
async def save_results(data: ResultsUpload, user: dict = Depends(get_current_staff)):
    """
    Save exam scores.

    Blank (null) scores are skipped. Every score must be within 0-100 or
    nothing is saved. Existing results are overwritten.
    """
    invalid = count_invalid_scores(entry.score for entry in data.scores)
    if invalid:
        raise HTTPException(status_code=400, detail=f"Please fix {invalid} invalid scores before saving")

    entries = [entry for entry in data.scores if entry.score is not None]
    if not entries:
        raise HTTPException(status_code=400, detail="No scores to save")

    school_id = user["school_id"]
    teacher_id = user.get("teacher_id") or data.teacher_id

    with get_db_session() as db:
        require_examination(db, data.examination_id, school_id)
        require_subject(db, data.subject_id, school_id)
        if teacher_id and not user.get("teacher_id"):
            require_teacher(db, teacher_id, school_id)

        student_ids = list({entry.student_id for entry in entries})
        known = fetch_all(
            db,
            "SELECT id FROM students WHERE school_id = :school_id AND id = ANY(CAST(:ids AS UUID[]))",
            {"school_id": school_id, "ids": student_ids}
        )
        if len(known) != len(student_ids):
            raise HTTPException(status_code=404, detail="Student not found")

        db.execute(
            text("""
                INSERT INTO results (student_id, subject_id, examination_id, teacher_id, score, grade, remarks)
                VALUES (:student_id, :subject_id, :examination_id, :teacher_id, :score, :grade, :remarks)
                ON CONFLICT (student_id, subject_id, examination_id) DO UPDATE SET
                    score = EXCLUDED.score,
                    grade = EXCLUDED.grade,
                    remarks = EXCLUDED.remarks,
                    teacher_id = EXCLUDED.teacher_id,
                    updated_at = NOW()
            """),
            [
                {
                    "student_id": entry.student_id,
                    "subject_id": data.subject_id,
                    "examination_id": data.examination_id,
                    "teacher_id": teacher_id,
                    "score": entry.score,
                    "grade": grade_for_score(entry.score),
                    "remarks": remarks_for_score(entry.score),
                }
                for entry in entries
            ]
        )

    logger.info(
        "results_saved",
        school_id=school_id,
        examination_id=data.examination_id,
        subject_id=data.subject_id,
        count=len(entries),
    )
    return MessageResponse(message=f"Saved {len(entries)} results")
