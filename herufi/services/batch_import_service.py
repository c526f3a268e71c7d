"""
Batch Import Service

PURPOSE:
Create many students or teachers from one uploaded spreadsheet (or, for
teachers, a JSON array of rows).

HOW IT WORKS:
1. Rows arrive as (line_number, {header: value}) pairs from utils.file_upload
2. Each row is validated on its own; bad rows go straight into the report
3. Students: every valid row is imported inside its own savepoint, so one
   failing row (duplicate login, duplicate admission number) never aborts
   the rest
4. Teachers: valid rows are upserted on (school_id, employee_number) in one
   statement; a database failure rejects the whole request
5. A batch_imports row records totals and the error log
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from herufi.core.auth import sign_up
from herufi.core.config import get_settings
from herufi.core.errors import database_error_message
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session
from herufi.schemas.schemas import StudentImportRow, TeacherImportRow, ImportStatus
from herufi.utils.file_upload import ParsedSheet
from herufi.utils.identifiers import (
    clean_admission_number,
    is_valid_admission_number,
    student_login_email,
)

logger = get_logger(__name__)

STUDENT_NAME_FIELDS = ("first_name", "last_name")


# ============================================================
# ROW VALIDATION
# ============================================================

def normalize_header(header: str) -> str:
    """'First Name ' -> 'first_name'"""
    return "_".join(header.strip().lower().replace("-", " ").split())


def normalize_row(row: Dict[str, str]) -> Dict[str, str]:
    return {normalize_header(k): v for k, v in row.items() if k}


def validation_message(exc: ValidationError) -> str:
    """First pydantic error as 'field: message'."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ()))
    return f"{field}: {error['msg']}" if field else error["msg"]


def validate_student_row(
    row: Dict[str, str],
    row_number: int,
    school_code: str
) -> Tuple[Optional[StudentImportRow], Optional[str]]:
    """
    Validate one student row.

    Returns:
        (parsed_row, None) when valid, else (None, "Row N: <reason>")
    """
    row = normalize_row(row)
    raw_admission = (row.get("admission_number") or "").strip()

    if not is_valid_admission_number(raw_admission, school_code):
        return None, f'Row {row_number}: Invalid admission number "{raw_admission}"'

    for name_field in STUDENT_NAME_FIELDS:
        if not (row.get(name_field) or "").strip():
            return None, f"Row {row_number}: Missing required field '{name_field}'"

    data = {k: v for k, v in row.items() if k in StudentImportRow.model_fields}
    data["admission_number"] = clean_admission_number(raw_admission)
    try:
        return StudentImportRow(**data), None
    except ValidationError as e:
        return None, f"Row {row_number}: {validation_message(e)}"


def validate_teacher_row(
    row: Any,
    row_number: int
) -> Tuple[Optional[TeacherImportRow], Optional[dict]]:
    """
    Validate one teacher row.

    Returns:
        (parsed_row, None) when valid, else (None, {row, employee_number, message})
    """
    if not isinstance(row, dict):
        return None, {"row": row_number, "employee_number": "N/A", "message": "Row must be an object"}

    row = normalize_row(row)
    data = {k: v for k, v in row.items() if k in TeacherImportRow.model_fields}
    try:
        return TeacherImportRow(**data), None
    except ValidationError as e:
        employee_number = row.get("employee_number")
        return None, {
            "row": row_number,
            "employee_number": str(employee_number).strip() if employee_number not in (None, "") else "N/A",
            "message": validation_message(e),
        }


# ============================================================
# BATCH IMPORT SERVICE
# ============================================================

class BatchImportService:
    """
    Imports students and teachers for one school.

    Usage:
        service = get_batch_import_service()
        result = service.import_students(sheet, school, stream_id, user_id, "students.csv")
    """

    def __init__(self):
        self.settings = get_settings()

    # ---------------- batch_imports bookkeeping ----------------

    def create_batch_record(
        self,
        db: Session,
        school_id: str,
        imported_by: str,
        import_type: str,
        file_name: Optional[str],
        total_records: int
    ) -> str:
        result = db.execute(
            text("""
                INSERT INTO batch_imports (school_id, imported_by, import_type, file_name, status, total_records)
                VALUES (:school_id, :imported_by, :import_type, :file_name, :status, :total_records)
                RETURNING id
            """),
            {
                "school_id": school_id,
                "imported_by": imported_by,
                "import_type": import_type,
                "file_name": file_name,
                "status": ImportStatus.processing.value,
                "total_records": total_records,
            }
        )
        return str(result.fetchone()[0])

    def finish_batch_record(
        self,
        db: Session,
        batch_id: str,
        successful: int,
        failed: int,
        error_log: List,
        status: ImportStatus = ImportStatus.completed
    ) -> None:
        db.execute(
            text("""
                UPDATE batch_imports
                SET status = :status,
                    successful_records = :successful,
                    failed_records = :failed,
                    error_log = CAST(:error_log AS JSONB),
                    updated_at = NOW()
                WHERE id = :id
            """),
            {
                "id": batch_id,
                "status": status.value,
                "successful": successful,
                "failed": failed,
                "error_log": json.dumps(error_log, default=str) if error_log else None,
            }
        )

    # ---------------- students ----------------

    def import_students(
        self,
        sheet: ParsedSheet,
        school: dict,
        stream_id: str,
        imported_by: str,
        file_name: Optional[str] = None
    ) -> dict:
        """
        Import students into a stream.

        Args:
            sheet: Parsed spreadsheet
            school: {"id", "code"} of the caller's school
            stream_id: Target stream (already checked to belong to the school)

        Returns:
            {batch_import_id, success_count, failed_count, report}
            with one report line per spreadsheet row, in row order
        """
        # (line, message) pairs, sorted into sheet order at the end
        failures = [(line, f"Row {line}: {message}") for line, message in sheet.errors]
        successes = []
        valid_rows = []

        for line, row in sheet.rows:
            student, error = validate_student_row(row, line, school["code"])
            if error:
                failures.append((line, error))
            else:
                valid_rows.append((line, student))

        with get_db_session() as db:
            batch_id = self.create_batch_record(
                db, school["id"], imported_by, "students", file_name, sheet.total_records
            )

            for line, student in valid_rows:
                try:
                    with db.begin_nested():
                        self._create_student(db, student, school["id"], stream_id, batch_id)
                except HTTPException as e:
                    message = e.detail
                except SQLAlchemyError as e:
                    message = database_error_message(e)
                else:
                    successes.append((line, f"Row {line}: Success"))
                    continue

                failures.append((line, f"Row {line}: Failed - {message}"))

            failures.sort(key=lambda entry: entry[0])
            self.finish_batch_record(
                db, batch_id, len(successes), len(failures), [message for _, message in failures]
            )

        report = [message for _, message in sorted(failures + successes, key=lambda entry: entry[0])]

        logger.info(
            "student_batch_imported",
            school_id=school["id"],
            batch_import_id=batch_id,
            success=len(successes),
            failed=len(failures),
        )
        return {
            "batch_import_id": batch_id,
            "success_count": len(successes),
            "failed_count": len(failures),
            "report": report,
        }

    def _create_student(
        self,
        db: Session,
        student: StudentImportRow,
        school_id: str,
        stream_id: str,
        batch_id: str
    ) -> str:
        email = student_login_email(student.admission_number, self.settings.student_email_domain)
        user_id = sign_up(
            db,
            email=email,
            password=student.password or self.settings.default_student_password,
            role="student",
            full_name=f"{student.first_name} {student.last_name}",
            school_id=school_id,
            metadata={
                "role": "student",
                "first_name": student.first_name,
                "last_name": student.last_name,
                "admission_number": student.admission_number,
                "school_id": school_id,
                "batch_import_id": batch_id,
            }
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
            {
                "school_id": school_id,
                "user_id": user_id,
                "stream_id": stream_id,
                "admission_number": student.admission_number,
                "first_name": student.first_name,
                "last_name": student.last_name,
                "date_of_birth": student.date_of_birth,
                "gender": student.gender.value if student.gender else None,
                "guardian_name": student.guardian_name,
                "guardian_phone": student.guardian_phone,
                "address": student.address,
            }
        )
        return str(result.fetchone()[0])

    # ---------------- teachers ----------------

    def import_teachers(
        self,
        rows: List[Tuple[int, dict]],
        school_id: str,
        imported_by: Optional[str] = None,
        file_name: Optional[str] = None,
        parse_errors: Optional[List[Tuple[int, str]]] = None
    ) -> dict:
        """
        Validate and upsert teacher rows.

        A batch_imports record is written only for file uploads (file_name given).

        Returns:
            {success_count, error_count, errors, batch_import_id}
        """
        errors = [
            {"row": line, "employee_number": "N/A", "message": message}
            for line, message in (parse_errors or [])
        ]
        valid_rows = []

        for line, row in rows:
            teacher, error = validate_teacher_row(row, line)
            if error:
                errors.append(error)
            else:
                valid_rows.append(self._teacher_params(teacher, school_id))

        batch_id = None
        try:
            with get_db_session() as db:
                if file_name is not None:
                    batch_id = self.create_batch_record(
                        db, school_id, imported_by, "teachers", file_name, len(rows) + len(parse_errors or [])
                    )

                if valid_rows:
                    db.execute(
                        text("""
                            INSERT INTO teachers (
                                school_id, employee_number, first_name, last_name,
                                email, phone, gender, qualification, date_hired
                            ) VALUES (
                                :school_id, :employee_number, :first_name, :last_name,
                                :email, :phone, :gender, :qualification, :date_hired
                            )
                            ON CONFLICT (school_id, employee_number) DO UPDATE SET
                                first_name = EXCLUDED.first_name,
                                last_name = EXCLUDED.last_name,
                                email = EXCLUDED.email,
                                phone = EXCLUDED.phone,
                                gender = EXCLUDED.gender,
                                qualification = EXCLUDED.qualification,
                                date_hired = EXCLUDED.date_hired,
                                updated_at = NOW()
                        """),
                        valid_rows
                    )

                if batch_id:
                    self.finish_batch_record(db, batch_id, len(valid_rows), len(errors), errors)
        except SQLAlchemyError as e:
            message = database_error_message(e)
            logger.warning("teacher_batch_failed", school_id=school_id, error=message)
            raise HTTPException(status_code=400, detail=message)

        logger.info(
            "teacher_batch_imported",
            school_id=school_id,
            success=len(valid_rows),
            failed=len(errors),
        )
        return {
            "success_count": len(valid_rows),
            "error_count": len(errors),
            "errors": errors,
            "batch_import_id": batch_id,
        }

    def _teacher_params(self, teacher: TeacherImportRow, school_id: str) -> dict:
        return {
            "school_id": school_id,
            "employee_number": teacher.employee_number,
            "first_name": teacher.first_name,
            "last_name": teacher.last_name,
            "email": str(teacher.email).lower() if teacher.email else None,
            "phone": teacher.phone,
            "gender": teacher.gender.value if teacher.gender else None,
            "qualification": teacher.qualification,
            "date_hired": teacher.date_hired,
        }


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_batch_import_service() -> BatchImportService:
    """Get batch import service instance."""
    return BatchImportService()
