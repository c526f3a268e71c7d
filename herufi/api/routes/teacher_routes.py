"""
Teacher Routes

GET /teachers - List teachers
GET /teachers/{teacher_id} - Teacher detail with subject assignments
POST /teachers - Create teacher (and their login account)
PUT /teachers/{teacher_id} - Update teacher
DELETE /teachers/{teacher_id} - Delete teacher
POST /teachers/batch - Batch upsert teachers from a JSON array
POST /teachers/batch/upload - Batch upsert teachers from CSV/XLSX
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Body
from sqlalchemy import text
from typing import Any, List

from herufi.api.lookups import require_teacher, set_clause, update_fields
from herufi.core.auth import get_current_admin, sign_up
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_all, fetch_one
from herufi.services.batch_import_service import get_batch_import_service
from herufi.utils.file_upload import parse_upload
from herufi.schemas.schemas import (
    TeacherCreate, TeacherUpdate, TeacherResponse, TeacherDetailResponse,
    TeacherBatchResponse, MessageResponse
)

router = APIRouter(prefix="/teachers", tags=["Teachers"])
logger = get_logger(__name__)

TEACHER_COLUMNS = """
    id, employee_number, first_name, last_name, email, phone, gender,
    qualification, date_hired, created_at
"""


@router.get("", response_model=List[TeacherResponse])
async def list_teachers(admin: dict = Depends(get_current_admin)):
    """List the school's teachers by name."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"SELECT {TEACHER_COLUMNS} FROM teachers WHERE school_id = :school_id ORDER BY first_name, last_name",
            {"school_id": admin["school_id"]}
        )
    return [TeacherResponse(**r) for r in rows]


@router.get("/{teacher_id}", response_model=TeacherDetailResponse)
async def get_teacher(teacher_id: str, admin: dict = Depends(get_current_admin)):
    """Teacher with their subject assignments and the classes they lead."""
    with get_db_session() as db:
        teacher = fetch_one(
            db,
            f"SELECT {TEACHER_COLUMNS} FROM teachers WHERE id = :id AND school_id = :school_id",
            {"id": teacher_id, "school_id": admin["school_id"]}
        )
        if not teacher:
            raise HTTPException(status_code=404, detail="Teacher not found")

        assignments = fetch_all(
            db,
            """
            SELECT ts.id, ts.subject_id, sub.name AS subject_name, ts.class_id, c.name AS class_name
            FROM teacher_subjects ts
            JOIN subjects sub ON sub.id = ts.subject_id
            JOIN classes c ON c.id = ts.class_id
            WHERE ts.teacher_id = :id
            ORDER BY c.name, sub.name
            """,
            {"id": teacher_id}
        )
        led_classes = fetch_all(
            db,
            """
            SELECT c.id, c.name, c.grade_level, c.class_teacher_id, c.created_at,
                   (SELECT COUNT(*) FROM streams st WHERE st.class_id = c.id) AS stream_count
            FROM classes c WHERE c.class_teacher_id = :id ORDER BY c.name
            """,
            {"id": teacher_id}
        )

    return TeacherDetailResponse(**teacher, assignments=assignments, class_teacher_of=led_classes)


@router.post("", response_model=TeacherResponse, status_code=201)
async def create_teacher(data: TeacherCreate, admin: dict = Depends(get_current_admin)):
    """Create a teacher with a login account (email + password)."""
    school_id = admin["school_id"]

    with get_db_session() as db:
        duplicate = fetch_one(
            db,
            "SELECT id FROM teachers WHERE school_id = :school_id AND employee_number = :employee_number",
            {"school_id": school_id, "employee_number": data.employee_number.strip()}
        )
        if duplicate:
            raise HTTPException(status_code=409, detail="Employee number already exists")

        user_id = sign_up(
            db,
            email=data.email,
            password=data.password,
            role="teacher",
            full_name=f"{data.first_name} {data.last_name}",
            school_id=school_id,
            metadata={"role": "teacher", "employee_number": data.employee_number, "school_id": school_id}
        )

        result = db.execute(
            text(f"""
                INSERT INTO teachers (
                    school_id, user_id, employee_number, first_name, last_name,
                    email, phone, gender, qualification, date_hired
                ) VALUES (
                    :school_id, :user_id, :employee_number, :first_name, :last_name,
                    :email, :phone, :gender, :qualification, :date_hired
                )
                RETURNING {TEACHER_COLUMNS}
            """),
            {
                "school_id": school_id,
                "user_id": user_id,
                "employee_number": data.employee_number.strip(),
                "first_name": data.first_name.strip(),
                "last_name": data.last_name.strip(),
                "email": data.email.lower(),
                "phone": data.phone,
                "gender": data.gender.value if data.gender else None,
                "qualification": data.qualification,
                "date_hired": data.date_hired,
            }
        )
        teacher = dict(result.mappings().first())

    logger.info("teacher_created", school_id=school_id, teacher_id=str(teacher["id"]))
    return TeacherResponse(**teacher)


@router.put("/{teacher_id}", response_model=TeacherResponse)
async def update_teacher(teacher_id: str, data: TeacherUpdate, admin: dict = Depends(get_current_admin)):
    """Update teacher details."""
    fields = update_fields(data)

    with get_db_session() as db:
        require_teacher(db, teacher_id, admin["school_id"])
        if fields:
            db.execute(
                text(f"UPDATE teachers SET {set_clause(fields)} WHERE id = :id"),
                {**fields, "id": teacher_id}
            )
        teacher = fetch_one(db, f"SELECT {TEACHER_COLUMNS} FROM teachers WHERE id = :id", {"id": teacher_id})

    return TeacherResponse(**teacher)


@router.delete("/{teacher_id}", response_model=MessageResponse)
async def delete_teacher(teacher_id: str, admin: dict = Depends(get_current_admin)):
    """Delete a teacher and their login account. Subject assignments cascade."""
    with get_db_session() as db:
        teacher = require_teacher(db, teacher_id, admin["school_id"])
        db.execute(text("DELETE FROM teachers WHERE id = :id"), {"id": teacher_id})
        if teacher["user_id"]:
            db.execute(text("DELETE FROM users WHERE id = :id"), {"id": teacher["user_id"]})

    logger.info("teacher_deleted", school_id=admin["school_id"], teacher_id=teacher_id)
    return MessageResponse(message="Teacher deleted successfully")


@router.post("/batch", response_model=TeacherBatchResponse)
async def batch_upsert_teachers(rows: List[Any] = Body(...), admin: dict = Depends(get_current_admin)):
    """
    Upsert teachers from a JSON array of row objects.

    Row numbers in errors count the header line, so the first object is row 2.
    Entries that are not objects are reported as errors for their row.
    """
    numbered = [(index + 2, row) for index, row in enumerate(rows)]
    result = get_batch_import_service().import_teachers(numbered, admin["school_id"])
    return TeacherBatchResponse(**result)


@router.post("/batch/upload", response_model=TeacherBatchResponse)
async def batch_upload_teachers(file: UploadFile = File(...), admin: dict = Depends(get_current_admin)):
    """Upsert teachers from a CSV or XLSX file (header row required)."""
    sheet = await parse_upload(file)
    result = get_batch_import_service().import_teachers(
        sheet.rows,
        admin["school_id"],
        imported_by=admin["user_id"],
        file_name=file.filename,
        parse_errors=sheet.errors
    )
    return TeacherBatchResponse(**result)
