"""
Lookups shared by route handlers.

Every record a caller touches must belong to the caller's school. These
helpers fetch the record scoped by school_id and raise 404 when it is
missing (or belongs to another school).
"""

from typing import Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session

from herufi.db.postgres import fetch_one


def get_school(db: Session, school_id: str) -> dict:
    school = fetch_one(
        db,
        "SELECT id, school_name, code, plan, created_at FROM schools WHERE id = :id",
        {"id": school_id}
    )
    if not school:
        raise HTTPException(status_code=404, detail="School not found")
    return school


def require_class(db: Session, class_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        "SELECT id, name, grade_level, class_teacher_id FROM classes WHERE id = :id AND school_id = :school_id",
        {"id": class_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Class not found")
    return row


def require_stream(db: Session, stream_id: str, school_id: str, class_id: Optional[str] = None) -> dict:
    """Stream of a class of this school (and of class_id, when given)."""
    row = fetch_one(
        db,
        """
        SELECT st.id, st.name, st.class_id, c.name AS class_name
        FROM streams st JOIN classes c ON c.id = st.class_id
        WHERE st.id = :id AND c.school_id = :school_id
        """,
        {"id": stream_id, "school_id": school_id}
    )
    if not row or (class_id and str(row["class_id"]) != str(class_id)):
        raise HTTPException(status_code=404, detail="Stream not found")
    return row


def require_teacher(db: Session, teacher_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        "SELECT id, first_name, last_name, user_id FROM teachers WHERE id = :id AND school_id = :school_id",
        {"id": teacher_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return row


def require_subject(db: Session, subject_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        "SELECT id, name, code FROM subjects WHERE id = :id AND school_id = :school_id",
        {"id": subject_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Subject not found")
    return row


def require_term(db: Session, term_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        "SELECT id, name FROM terms WHERE id = :id AND school_id = :school_id",
        {"id": term_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Term not found")
    return row


def require_examination(db: Session, examination_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        """
        SELECT e.id, e.name, e.term_id, t.name AS term_name, e.year,
               e.start_date, e.end_date, e.created_at
        FROM examinations e LEFT JOIN terms t ON t.id = e.term_id
        WHERE e.id = :id AND e.school_id = :school_id
        """,
        {"id": examination_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Examination not found")
    return row


def require_student(db: Session, student_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        "SELECT id, user_id, stream_id, admission_number FROM students WHERE id = :id AND school_id = :school_id",
        {"id": student_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Student not found")
    return row


def update_fields(data, exclude: tuple = ()) -> dict:
    """Fields explicitly sent in a PATCH-style update body, enums as values."""
    fields = data.model_dump(exclude_unset=True, mode="json")
    return {k: v for k, v in fields.items() if k not in exclude}


def set_clause(fields: dict) -> str:
    """'a = :a, b = :b, updated_at = NOW()' for an UPDATE statement."""
    return ", ".join([f"{k} = :{k}" for k in fields] + ["updated_at = NOW()"])
