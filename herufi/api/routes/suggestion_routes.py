"""
Suggestion Routes

GET /suggestions/teachers/{school_id}/{class_id} - Teachers of a school with
    the subjects each one teaches in the given class (timetable helper)
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import List

from herufi.core.auth import get_current_user
from herufi.db.postgres import get_db_session, fetch_all
from herufi.schemas.schemas import TeacherSuggestion

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])


@router.get("/teachers/{school_id}/{class_id}", response_model=List[TeacherSuggestion])
async def suggest_teachers(school_id: str, class_id: str, user: dict = Depends(get_current_user)):
    """Only members of the school may list its teachers."""
    if user["school_id"] != school_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT t.id, t.first_name || ' ' || t.last_name AS name,
                   COALESCE(
                       ARRAY_AGG(sub.name ORDER BY sub.name) FILTER (WHERE sub.id IS NOT NULL),
                       '{}'
                   ) AS subjects
            FROM teachers t
            LEFT JOIN teacher_subjects ts ON ts.teacher_id = t.id AND ts.class_id = :class_id
            LEFT JOIN subjects sub ON sub.id = ts.subject_id
            WHERE t.school_id = :school_id
            GROUP BY t.id, t.first_name, t.last_name
            ORDER BY name
            """,
            {"school_id": school_id, "class_id": class_id}
        )

    return [TeacherSuggestion(id=str(r["id"]), name=r["name"], subjects=list(r["subjects"] or [])) for r in rows]
