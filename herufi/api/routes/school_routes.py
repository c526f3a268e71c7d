"""
School Routes

GET /schools/me - Get the caller's school
PUT /schools/me - Update school name / plan (admin)
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from herufi.api.lookups import get_school, set_clause, update_fields
from herufi.core.auth import get_current_user, get_current_admin
from herufi.db.postgres import get_db_session
from herufi.schemas.schemas import SchoolResponse, SchoolUpdate

router = APIRouter(prefix="/schools", tags=["Schools"])


@router.get("/me", response_model=SchoolResponse)
async def get_my_school(user: dict = Depends(get_current_user)):
    """School of the signed-in account."""
    if not user["school_id"]:
        raise HTTPException(status_code=400, detail="No school associated with your account")
    with get_db_session() as db:
        school = get_school(db, user["school_id"])
    return SchoolResponse(**school)


@router.put("/me", response_model=SchoolResponse)
async def update_my_school(data: SchoolUpdate, admin: dict = Depends(get_current_admin)):
    """
    Update school details.

    The school code is not editable: admission numbers and student logins embed it.
    """
    fields = update_fields(data)
    with get_db_session() as db:
        if fields:
            db.execute(
                text(f"UPDATE schools SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": admin["school_id"]}
            )
        school = get_school(db, admin["school_id"])
    return SchoolResponse(**school)
