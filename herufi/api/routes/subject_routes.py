"""
Subject Routes

GET /subjects - List subjects
GET /subjects/{subject_id} - Get subject
POST /subjects - Create subject
PUT /subjects/{subject_id} - Update subject
DELETE /subjects/{subject_id} - Delete subject
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_subject, set_clause, update_fields
from herufi.core.auth import get_current_admin
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.schemas.schemas import SubjectCreate, SubjectUpdate, SubjectResponse, MessageResponse

router = APIRouter(prefix="/subjects", tags=["Subjects"])

SUBJECT_COLUMNS = "id, name, code, created_at"


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"SELECT {SUBJECT_COLUMNS} FROM subjects WHERE school_id = :school_id ORDER BY name",
            {"school_id": admin["school_id"]}
        )
    return [SubjectResponse(**r) for r in rows]


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(subject_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_subject(db, subject_id, admin["school_id"])
        row = fetch_one(db, f"SELECT {SUBJECT_COLUMNS} FROM subjects WHERE id = :id", {"id": subject_id})
    return SubjectResponse(**row)


@router.post("", response_model=SubjectResponse, status_code=201)
async def create_subject(data: SubjectCreate, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO subjects (school_id, name, code)
                VALUES (:school_id, :name, :code)
                RETURNING {SUBJECT_COLUMNS}
            """),
            {
                "school_id": admin["school_id"],
                "name": data.name.strip(),
                "code": data.code.strip().upper() if data.code else None,
            }
        )
        row = dict(result.mappings().first())
    return SubjectResponse(**row)


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(subject_id: str, data: SubjectUpdate, admin: dict = Depends(get_current_admin)):
    fields = update_fields(data)
    if fields.get("code"):
        fields["code"] = fields["code"].strip().upper()

    with get_db_session() as db:
        require_subject(db, subject_id, admin["school_id"])
        if fields:
            db.execute(
                text(f"UPDATE subjects SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": subject_id}
            )
        row = fetch_one(db, f"SELECT {SUBJECT_COLUMNS} FROM subjects WHERE id = :id", {"id": subject_id})
    return SubjectResponse(**row)


@router.delete("/{subject_id}", response_model=MessageResponse)
async def delete_subject(subject_id: str, admin: dict = Depends(get_current_admin)):
    """Delete a subject. Fails with 409 while results still reference it."""
    with get_db_session() as db:
        require_subject(db, subject_id, admin["school_id"])
        db.execute(text("DELETE FROM subjects WHERE id = :id"), {"id": subject_id})
    return MessageResponse(message="Subject deleted successfully")
