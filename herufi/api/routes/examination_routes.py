"""
Examination Routes

GET /examinations - List examinations (admins and teachers)
GET /examinations/{examination_id} - Get examination
POST /examinations - Create examination
PUT /examinations/{examination_id} - Update examination
DELETE /examinations/{examination_id} - Delete examination (results cascade)
GET /examinations/{examination_id}/results - Result analysis with rankings
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List, Optional

from herufi.api.lookups import require_examination, require_term, set_clause, update_fields
from herufi.core.auth import get_current_admin, get_current_staff
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all
from herufi.services.analytics_service import analyze_examination
from herufi.schemas.schemas import (
    ExaminationCreate, ExaminationUpdate, ExaminationResponse,
    ExaminationAnalysisResponse, MessageResponse
)

router = APIRouter(prefix="/examinations", tags=["Examinations"])
logger = get_logger(__name__)


@router.get("", response_model=List[ExaminationResponse])
async def list_examinations(
    year: Optional[int] = None,
    term_id: Optional[str] = None,
    user: dict = Depends(get_current_staff)
):
    """List the school's examinations, newest first."""
    conditions = ["e.school_id = :school_id"]
    params = {"school_id": user["school_id"]}
    if year:
        conditions.append("e.year = :year")
        params["year"] = year
    if term_id:
        conditions.append("e.term_id = :term_id")
        params["term_id"] = term_id

    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"""
            SELECT e.id, e.name, e.term_id, t.name AS term_name, e.year,
                   e.start_date, e.end_date, e.created_at
            FROM examinations e LEFT JOIN terms t ON t.id = e.term_id
            WHERE {" AND ".join(conditions)}
            ORDER BY e.year DESC, e.start_date DESC NULLS LAST, e.created_at DESC
            """,
            params
        )
    return [ExaminationResponse(**r) for r in rows]


@router.get("/{examination_id}", response_model=ExaminationResponse)
async def get_examination(examination_id: str, user: dict = Depends(get_current_staff)):
    with get_db_session() as db:
        row = require_examination(db, examination_id, user["school_id"])
    return ExaminationResponse(**row)


@router.post("", response_model=ExaminationResponse, status_code=201)
async def create_examination(data: ExaminationCreate, admin: dict = Depends(get_current_admin)):
    """Create an examination within one of the school's terms."""
    school_id = admin["school_id"]
    with get_db_session() as db:
        require_term(db, data.term_id, school_id)
        result = db.execute(
            text("""
                INSERT INTO examinations (school_id, term_id, name, year, start_date, end_date)
                VALUES (:school_id, :term_id, :name, :year, :start_date, :end_date)
                RETURNING id
            """),
            {
                "school_id": school_id,
                "term_id": data.term_id,
                "name": data.name.strip(),
                "year": data.year,
                "start_date": data.start_date,
                "end_date": data.end_date,
            }
        )
        examination_id = str(result.fetchone()[0])
        row = require_examination(db, examination_id, school_id)

    logger.info("examination_created", school_id=school_id, examination_id=examination_id)
    return ExaminationResponse(**row)


@router.put("/{examination_id}", response_model=ExaminationResponse)
async def update_examination(
    examination_id: str,
    data: ExaminationUpdate,
    admin: dict = Depends(get_current_admin)
):
    school_id = admin["school_id"]
    fields = update_fields(data)

    with get_db_session() as db:
        current = require_examination(db, examination_id, school_id)
        if fields.get("term_id"):
            require_term(db, fields["term_id"], school_id)

        start = data.start_date if "start_date" in fields else current["start_date"]
        end = data.end_date if "end_date" in fields else current["end_date"]
        if start and end and end < start:
            raise HTTPException(status_code=400, detail="End date must be on or after start date")

        if fields:
            db.execute(
                text(f"UPDATE examinations SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": examination_id}
            )
        row = require_examination(db, examination_id, school_id)

    return ExaminationResponse(**row)


@router.delete("/{examination_id}", response_model=MessageResponse)
async def delete_examination(examination_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_examination(db, examination_id, admin["school_id"])
        db.execute(text("DELETE FROM examinations WHERE id = :id"), {"id": examination_id})

    logger.info("examination_deleted", school_id=admin["school_id"], examination_id=examination_id)
    return MessageResponse(message="Examination deleted successfully")


@router.get("/{examination_id}/results", response_model=ExaminationAnalysisResponse)
async def get_examination_results(
    examination_id: str,
    class_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    user: dict = Depends(get_current_staff)
):
    """
    Result analysis for an examination.

    Optional filters narrow the analysis to one class and/or one subject.
    Rankings are by total score; equal totals share a position.
    """
    conditions = ["r.examination_id = :examination_id", "s.school_id = :school_id"]
    params = {"examination_id": examination_id, "school_id": user["school_id"]}
    if class_id:
        conditions.append("st.class_id = :class_id")
        params["class_id"] = class_id
    if subject_id:
        conditions.append("r.subject_id = :subject_id")
        params["subject_id"] = subject_id

    with get_db_session() as db:
        examination = require_examination(db, examination_id, user["school_id"])
        rows = fetch_all(
            db,
            f"""
            SELECT r.student_id, s.admission_number, s.first_name, s.last_name,
                   r.subject_id, sub.name AS subject_name, r.score
            FROM results r
            JOIN students s ON s.id = r.student_id
            LEFT JOIN streams st ON st.id = s.stream_id
            JOIN subjects sub ON sub.id = r.subject_id
            WHERE {" AND ".join(conditions)}
            ORDER BY s.admission_number, sub.name
            """,
            params
        )

    analysis = analyze_examination(rows)
    return ExaminationAnalysisResponse(examination=examination, **analysis)
