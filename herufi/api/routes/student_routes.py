"""
Student Routes

GET /students - List students (filters: stream_id, class_id, search)
GET /students/{student_id} - Student detail with exam results
POST /students - Create student (and their login account)
PUT /students/{student_id} - Update student
DELETE /students/{student_id} - Delete student and login account
POST /students/batch - Batch import students from CSV/XLSX into a stream
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from sqlalchemy import text
from typing import List, Optional

from herufi.api.lookups import get_school, require_stream, require_student, set_clause, update_fields
from herufi.core.auth import get_current_admin, sign_up
from herufi.core.config import get_settings
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.services.batch_import_service import get_batch_import_service
from herufi.utils.file_upload import parse_upload
from herufi.utils.identifiers import (
    admission_format_hint, clean_admission_number, is_valid_admission_number, student_login_email
)
from herufi.schemas.schemas import (
    StudentCreate, StudentUpdate, StudentResponse, StudentDetailResponse,
    StudentBatchResponse, MessageResponse
)

router = APIRouter(prefix="/students", tags=["Students"])
settings = get_settings()
logger = get_logger(__name__)

STUDENT_SELECT = """
    SELECT s.id, s.admission_number, s.first_name, s.last_name, s.stream_id,
           st.name AS stream_name, c.id AS class_id, c.name AS class_name,
           s.date_of_birth, s.gender, s.guardian_name, s.guardian_phone, s.address, s.created_at
    FROM students s
    LEFT JOIN streams st ON st.id = s.stream_id
    LEFT JOIN classes c ON c.id = st.class_id
"""


def fetch_student(db, student_id: str, school_id: str) -> dict:
    row = fetch_one(
        db,
        STUDENT_SELECT + " WHERE s.id = :id AND s.school_id = :school_id",
        {"id": student_id, "school_id": school_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Student not found")
    return row


@router.get("", response_model=List[StudentResponse])
async def list_students(
    stream_id: Optional[str] = None,
    class_id: Optional[str] = None,
    search: Optional[str] = None,
    admin: dict = Depends(get_current_admin)
):
    """List the school's students ordered by admission number."""
    conditions = ["s.school_id = :school_id"]
    params = {"school_id": admin["school_id"]}

    if stream_id:
        conditions.append("s.stream_id = :stream_id")
        params["stream_id"] = stream_id
    if class_id:
        conditions.append("c.id = :class_id")
        params["class_id"] = class_id
    if search:
        conditions.append(
            "(s.first_name ILIKE :search OR s.last_name ILIKE :search OR s.admission_number ILIKE :search)"
        )
        params["search"] = f"%{search.strip()}%"

    with get_db_session() as db:
        rows = fetch_all(
            db,
            STUDENT_SELECT + " WHERE " + " AND ".join(conditions) + " ORDER BY s.admission_number",
            params
        )

    return [StudentResponse(**r) for r in rows]


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(student_id: str, admin: dict = Depends(get_current_admin)):
    """Student with stream, class and every exam result."""
    with get_db_session() as db:
        student = fetch_student(db, student_id, admin["school_id"])
        results = fetch_all(
            db,
            """
            SELECT r.examination_id, e.name AS examination_name, sub.name AS subject_name,
                   r.score, r.grade, r.remarks
            FROM results r
            JOIN examinations e ON e.id = r.examination_id
            JOIN subjects sub ON sub.id = r.subject_id
            WHERE r.student_id = :id
            ORDER BY e.year DESC, e.created_at DESC, sub.name
            """,
            {"id": student_id}
        )

    return StudentDetailResponse(**student, results=results)


@router.post("", response_model=StudentResponse, status_code=201)
async def create_student(data: StudentCreate, admin: dict = Depends(get_current_admin)):
    """
    Create a student.

    The admission number must be SCHOOLCODE/n. If a student with that number
    already exists in the school, that record is updated instead. New students
    get a login account: <admission number without slash>@<student domain>.
    """
    school_id = admin["school_id"]
    admission_number = clean_admission_number(data.admission_number)

    with get_db_session() as db:
        school = get_school(db, school_id)
        if not is_valid_admission_number(admission_number, school["code"]):
            raise HTTPException(status_code=400, detail=admission_format_hint(school["code"]))

        require_stream(db, data.stream_id, school_id)

        params = {
            "school_id": school_id,
            "stream_id": data.stream_id,
            "admission_number": admission_number,
            "first_name": data.first_name.strip(),
            "last_name": data.last_name.strip(),
            "date_of_birth": data.date_of_birth,
            "gender": data.gender.value if data.gender else None,
            "guardian_name": data.guardian_name,
            "guardian_phone": data.guardian_phone,
            "address": data.address,
        }

        existing = fetch_one(
            db,
            "SELECT id FROM students WHERE school_id = :school_id AND admission_number = :admission_number",
            {"school_id": school_id, "admission_number": admission_number}
        )

        if existing:
            student_id = str(existing["id"])
            db.execute(
                text("""
                    UPDATE students SET
                        stream_id = :stream_id, first_name = :first_name, last_name = :last_name,
                        date_of_birth = :date_of_birth, gender = :gender, guardian_name = :guardian_name,
                        guardian_phone = :guardian_phone, address = :address, updated_at = NOW()
                    WHERE id = :id
                """),
                {**params, "id": student_id}
            )
            logger.info("student_updated", school_id=school_id, student_id=student_id)
        else:
            user_id = sign_up(
                db,
                email=student_login_email(admission_number, settings.student_email_domain),
                password=data.password or settings.default_student_password,
                role="student",
                full_name=f"{params['first_name']} {params['last_name']}",
                school_id=school_id,
                metadata={"role": "student", "admission_number": admission_number, "school_id": school_id}
            )
            result = db.execute(
                text("""
                    INSERT INTO students (
                        school_id, user_id, stream_id, admission_number, first_name, last_name,
                        date_of_birth, gender, guardian_name, guardian_phone, address
                    ) VALUES (
                        :school_id, :user_id, :stream_id, :admission_number, :first_name, :last_name,
                        :date_of_birth, :gender, :guardian_name, :guardian_phone, :address
                    )
                    RETURNING id
                """),
                {**params, "user_id": user_id}
            )
            student_id = str(result.fetchone()[0])
            logger.info("student_created", school_id=school_id, student_id=student_id)

        student = fetch_student(db, student_id, school_id)

    return StudentResponse(**student)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(student_id: str, data: StudentUpdate, admin: dict = Depends(get_current_admin)):
    """Update student details. The admission number cannot change."""
    school_id = admin["school_id"]
    fields = update_fields(data)

    with get_db_session() as db:
        require_student(db, student_id, school_id)
        if fields.get("stream_id"):
            require_stream(db, fields["stream_id"], school_id)

        if fields:
            db.execute(
                text(f"UPDATE students SET {set_clause(fields)} WHERE id = :id AND school_id = :school_id"),
                {**fields, "id": student_id, "school_id": school_id}
            )
        student = fetch_student(db, student_id, school_id)

    return StudentResponse(**student)


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(student_id: str, admin: dict = Depends(get_current_admin)):
    """Delete a student, their results and their login account."""
    with get_db_session() as db:
        student = require_student(db, student_id, admin["school_id"])
        db.execute(text("DELETE FROM students WHERE id = :id"), {"id": student_id})
        if student["user_id"]:
            db.execute(text("DELETE FROM users WHERE id = :id"), {"id": student["user_id"]})

    logger.info("student_deleted", school_id=admin["school_id"], student_id=student_id)
    return MessageResponse(message="Student deleted successfully")


@router.post("/batch", response_model=StudentBatchResponse)
async def batch_import_students(
    file: UploadFile = File(...),
    stream_id: str = Form(...),
    admin: dict = Depends(get_current_admin)
):
    """
    Import students from a CSV or XLSX file into one stream.

    Expected columns: admission_number, first_name, last_name and optionally
    date_of_birth, gender, guardian_name, guardian_phone, address, password.
    Every row is reported back as "Row N: Success" or the reason it failed.
    """
    sheet = await parse_upload(file)

    with get_db_session() as db:
        school = get_school(db, admin["school_id"])
        require_stream(db, stream_id, admin["school_id"])

    result = get_batch_import_service().import_students(
        sheet,
        school={"id": str(school["id"]), "code": school["code"]},
        stream_id=stream_id,
        imported_by=admin["user_id"],
        file_name=file.filename
    )
    return StudentBatchResponse(**result)
