"""
Term Routes

GET /terms - List terms
GET /terms/{term_id} - Get term
POST /terms - Create term
PUT /terms/{term_id} - Update term
DELETE /terms/{term_id} - Delete term
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_term, set_clause, update_fields
from herufi.core.auth import get_current_admin
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.schemas.schemas import TermCreate, TermUpdate, TermResponse, MessageResponse

router = APIRouter(prefix="/terms", tags=["Terms"])

TERM_COLUMNS = "id, name, code, start_date, end_date, created_at"


@router.get("", response_model=List[TermResponse])
async def list_terms(admin: dict = Depends(get_current_admin)):
    """List terms, most recent first."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"""
            SELECT {TERM_COLUMNS} FROM terms WHERE school_id = :school_id
            ORDER BY start_date DESC NULLS LAST, name
            """,
            {"school_id": admin["school_id"]}
        )
    return [TermResponse(**r) for r in rows]


@router.get("/{term_id}", response_model=TermResponse)
async def get_term(term_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_term(db, term_id, admin["school_id"])
        row = fetch_one(db, f"SELECT {TERM_COLUMNS} FROM terms WHERE id = :id", {"id": term_id})
    return TermResponse(**row)


@router.post("", response_model=TermResponse, status_code=201)
async def create_term(data: TermCreate, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO terms (school_id, name, code, start_date, end_date)
                VALUES (:school_id, :name, :code, :start_date, :end_date)
                RETURNING {TERM_COLUMNS}
            """),
            {
                "school_id": admin["school_id"],
                "name": data.name.strip(),
                "code": data.code.strip(),
                "start_date": data.start_date,
                "end_date": data.end_date,
            }
        )
        row = dict(result.mappings().first())
    return TermResponse(**row)


@router.put("/{term_id}", response_model=TermResponse)
async def update_term(term_id: str, data: TermUpdate, admin: dict = Depends(get_current_admin)):
    """Update a term. A partial date change is checked against the stored other end."""
    fields = update_fields(data)

    with get_db_session() as db:
        require_term(db, term_id, admin["school_id"])
        current = fetch_one(db, "SELECT start_date, end_date FROM terms WHERE id = :id", {"id": term_id})
        start = data.start_date if "start_date" in fields else current["start_date"]
        end = data.end_date if "end_date" in fields else current["end_date"]
        if start and end and end < start:
            raise HTTPException(status_code=400, detail="End date must be on or after start date")

        if fields:
            db.execute(
                text(f"UPDATE terms SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": term_id}
            )
        row = fetch_one(db, f"SELECT {TERM_COLUMNS} FROM terms WHERE id = :id", {"id": term_id})
    return TermResponse(**row)


@router.delete("/{term_id}", response_model=MessageResponse)
async def delete_term(term_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        require_term(db, term_id, admin["school_id"])
        db.execute(text("DELETE FROM terms WHERE id = :id"), {"id": term_id})
    return MessageResponse(message="Term deleted successfully")
