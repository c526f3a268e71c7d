"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from herufi.utils.identifiers import normalize_school_code


TIME_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ============================================================
# ENUMS
# ============================================================

class Portal(str, Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class TestType(str, Enum):
    quiz = "quiz"
    cat = "cat"
    assignment = "assignment"
    practical = "practical"


class AssessmentType(str, Enum):
    exam = "exam"
    test = "test"
    quiz = "quiz"
    assignment = "assignment"
    project = "project"


class Day(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"


class ImportStatus(str, Enum):
    processing = "processing"
    completed = "completed"


# ============================================================
# BASE
# ============================================================

class APIModel(BaseModel):
    """Response base: database UUIDs and numerics come back as str and float."""

    @field_validator("*", mode="before")
    @classmethod
    def coerce_db_types(cls, v):
        if isinstance(v, uuid.UUID):
            return str(v)
        if isinstance(v, Decimal):
            return float(v)
        return v


def _check_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValueError("End date must be on or after start date")


# ============================================================
# AUTH SCHEMAS
# ============================================================

class SchoolRegisterRequest(BaseModel):
    school_name: str = Field(..., min_length=2, max_length=200)
    code: str = Field(..., min_length=2, max_length=6)
    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("code")
    @classmethod
    def code_letters_only(cls, v: str) -> str:
        return normalize_school_code(v)

class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    portal: Optional[Portal] = None

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str
    dashboard: str

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)

class UserResponse(APIModel):
    user_id: str
    email: str
    role: str
    school_id: Optional[str] = None
    full_name: Optional[str] = None


# ============================================================
# SCHOOL SCHEMAS
# ============================================================

class SchoolUpdate(BaseModel):
    school_name: Optional[str] = Field(None, min_length=2, max_length=200)
    plan: Optional[str] = None

class SchoolResponse(APIModel):
    id: str
    school_name: str
    code: str
    plan: Optional[str] = None
    created_at: Optional[datetime] = None


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentCreate(BaseModel):
    admission_number: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    stream_id: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    address: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    stream_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    address: Optional[str] = None

class StudentResponse(APIModel):
    id: str
    admission_number: str
    first_name: str
    last_name: str
    stream_id: Optional[str] = None
    stream_name: Optional[str] = None
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None

class StudentResultRow(APIModel):
    examination_id: str
    examination_name: str
    subject_name: str
    score: float
    grade: Optional[str] = None
    remarks: Optional[str] = None

class StudentDetailResponse(StudentResponse):
    results: List[StudentResultRow] = []

class StudentImportRow(BaseModel):
    """One row of a student batch file after header mapping."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    admission_number: str
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    address: Optional[str] = None
    password: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_blanks(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("gender", mode="before")
    @classmethod
    def lower_gender(cls, v):
        return v.lower() if isinstance(v, str) else v

class StudentBatchResponse(APIModel):
    batch_import_id: str
    success_count: int
    failed_count: int
    report: List[str]


# ============================================================
# TEACHER SCHEMAS
# ============================================================

class TeacherCreate(BaseModel):
    employee_number: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    qualification: Optional[str] = None
    date_hired: Optional[date] = None

class TeacherUpdate(BaseModel):
    employee_number: Optional[str] = Field(None, min_length=1, max_length=50)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    qualification: Optional[str] = None
    date_hired: Optional[date] = None

class TeacherResponse(APIModel):
    id: str
    employee_number: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    qualification: Optional[str] = None
    date_hired: Optional[date] = None
    created_at: Optional[datetime] = None

class TeacherAssignment(APIModel):
    id: str
    subject_id: str
    subject_name: str
    class_id: str
    class_name: str

class TeacherDetailResponse(TeacherResponse):
    assignments: List[TeacherAssignment] = []
    class_teacher_of: List["ClassResponse"] = []

class TeacherImportRow(BaseModel):
    """One teacher record from a batch request or file."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    employee_number: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    qualification: Optional[str] = None
    date_hired: Optional[date] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_blanks(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("gender", mode="before")
    @classmethod
    def lower_gender(cls, v):
        return v.lower() if isinstance(v, str) else v

class TeacherImportError(BaseModel):
    row: int
    employee_number: str
    message: str

class TeacherBatchResponse(BaseModel):
    success_count: int
    error_count: int
    errors: List[TeacherImportError]
    batch_import_id: Optional[str] = None


# ============================================================
# CLASS / STREAM SCHEMAS
# ============================================================

class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    grade_level: Optional[int] = Field(None, ge=1, le=20)
    class_teacher_id: Optional[str] = None

class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    grade_level: Optional[int] = Field(None, ge=1, le=20)
    class_teacher_id: Optional[str] = None

class ClassResponse(APIModel):
    id: str
    name: str
    grade_level: Optional[int] = None
    class_teacher_id: Optional[str] = None
    class_teacher_name: Optional[str] = None
    stream_count: int = 0
    created_at: Optional[datetime] = None

class StreamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

class StreamResponse(APIModel):
    id: str
    class_id: str
    name: str
    student_count: int = 0

class ClassSubjectAssignment(BaseModel):
    teacher_id: str
    subject_ids: List[str] = []

class SubjectAssignmentUpdate(BaseModel):
    assignments: List[ClassSubjectAssignment]

class SubjectAssignmentResponse(APIModel):
    id: str
    teacher_id: str
    teacher_name: str
    subject_id: str
    subject_name: str


# ============================================================
# SUBJECT / TERM / EXAMINATION SCHEMAS
# ============================================================

class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=20)

class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=20)

class SubjectResponse(APIModel):
    id: str
    name: str
    code: Optional[str] = None
    created_at: Optional[datetime] = None

class TermCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_date_range(self.start_date, self.end_date)
        return self

class TermUpdate(TermCreate):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=20)

class TermResponse(APIModel):
    id: str
    name: str
    code: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None

class ExaminationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    term_id: str
    year: int = Field(..., ge=2000, le=2100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_date_range(self.start_date, self.end_date)
        return self

class ExaminationUpdate(ExaminationCreate):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    term_id: Optional[str] = None
    year: Optional[int] = Field(None, ge=2000, le=2100)

class ExaminationResponse(APIModel):
    id: str
    name: str
    term_id: Optional[str] = None
    term_name: Optional[str] = None
    year: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    result_count: Optional[int] = None
    created_at: Optional[datetime] = None


# ============================================================
# RESULT SCHEMAS
# ============================================================

class ScoreEntry(BaseModel):
    student_id: str
    score: Optional[float] = None

class ResultsUpload(BaseModel):
    examination_id: str
    subject_id: str
    scores: List[ScoreEntry]
    teacher_id: Optional[str] = None

class ResultSheetRow(APIModel):
    student_id: str
    admission_number: str
    first_name: str
    last_name: str
    stream_name: Optional[str] = None
    score: Optional[float] = None
    grade: Optional[str] = None

class ResultRow(APIModel):
    student_id: str
    admission_number: str
    student_name: str
    subject_id: str
    subject_name: str
    score: float
    grade: str
    remarks: str

class ResultSummary(BaseModel):
    total_results: int = 0
    total_students: int = 0
    average: float = 0
    highest: float = 0
    lowest: float = 0
    pass_rate: float = 0

class SubjectAverage(BaseModel):
    subject_id: str
    subject_name: str
    average: float
    highest: float
    lowest: float
    count: int

class StudentRanking(BaseModel):
    student_id: str
    admission_number: str
    student_name: str
    total: float
    average: float
    subject_count: int
    grade: str
    remarks: str
    position: int

class ExaminationAnalysisResponse(BaseModel):
    examination: ExaminationResponse
    results: List[ResultRow]
    summary: ResultSummary
    grade_distribution: Dict[str, int]
    subject_averages: List[SubjectAverage]
    rankings: List[StudentRanking]


# ============================================================
# CLASS TEST SCHEMAS
# ============================================================

class ClassTestCreate(BaseModel):
    teacher_subject_id: str
    name: str = Field(..., min_length=1, max_length=200)
    type: TestType
    max_marks: float = Field(..., gt=0, le=1000)
    stream_id: Optional[str] = None

class ClassTestUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[TestType] = None
    max_marks: Optional[float] = Field(None, gt=0, le=1000)

class ClassTestResponse(APIModel):
    id: str
    name: str
    type: str
    max_marks: float
    subject_id: str
    subject_name: Optional[str] = None
    class_id: str
    class_name: Optional[str] = None
    stream_id: Optional[str] = None
    submissions: int = 0
    average_marks: Optional[float] = None
    created_at: Optional[datetime] = None

class MarksEntry(BaseModel):
    student_id: str
    marks: Optional[float] = None

class TestMarksUpload(BaseModel):
    marks: List[MarksEntry]

class TestSheetRow(APIModel):
    student_id: str
    admission_number: str
    first_name: str
    last_name: str
    marks: Optional[float] = None
    grade: Optional[str] = None


# ============================================================
# ASSESSMENT SCHEMAS
# ============================================================

class AssessmentCreate(BaseModel):
    class_id: str
    subject_id: str
    term_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    type: AssessmentType
    max_score: float = Field(100, gt=0, le=1000)
    weight: Optional[float] = Field(None, ge=0, le=100)
    due_date: Optional[date] = None
    description: Optional[str] = None

class AssessmentResponse(APIModel):
    id: str
    class_id: str
    subject_id: str
    subject_name: Optional[str] = None
    term_id: Optional[str] = None
    name: str
    type: str
    max_score: float
    weight: Optional[float] = None
    due_date: Optional[date] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

class AssessmentScore(BaseModel):
    score: float = Field(..., ge=0)

class AssessmentResultResponse(APIModel):
    id: str
    student_id: str
    assessment_id: str
    score: float
    graded_by: Optional[str] = None
    graded_at: Optional[datetime] = None

class ClassAllResultsResponse(BaseModel):
    class_info: ClassResponse
    students: List[StudentResponse]
    assessments: List[AssessmentResponse]
    results: List[AssessmentResultResponse]


# ============================================================
# TIMETABLE SCHEMAS
# ============================================================

class TimeSlotCreate(BaseModel):
    day: Day
    subject: str = Field(..., min_length=1, max_length=100)
    teacher_id: Optional[str] = None
    start_time: str
    end_time: str
    location: Optional[str] = None

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, v: str) -> str:
        if not TIME_REGEX.match(v):
            raise ValueError("Time must be HH:MM")
        return v

    @model_validator(mode="after")
    def start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self

class TimeSlot(TimeSlotCreate):
    id: str

class TimetableResponse(BaseModel):
    message: Optional[str] = None
    slots: List[TimeSlot]


# ============================================================
# SUGGESTION SCHEMAS
# ============================================================

class TeacherSuggestion(BaseModel):
    id: str
    name: str
    subjects: List[str]


# ============================================================
# DASHBOARD SCHEMAS
# ============================================================

class AdminStats(BaseModel):
    students: int = 0
    teachers: int = 0
    classes: int = 0
    subjects: int = 0
    examinations: int = 0

class AdminDashboardResponse(BaseModel):
    school: SchoolResponse
    stats: AdminStats
    recent_students: List[StudentResponse]
    recent_teachers: List[TeacherResponse]

class TeacherDashboardResponse(BaseModel):
    teacher: TeacherResponse
    school: SchoolResponse
    assignments: List[TeacherAssignment]
    classes_taught: List[ClassResponse]
    class_teacher_of: List[ClassResponse]
    student_count: int
    recent_examinations: List[ExaminationResponse]

class PerformanceRow(BaseModel):
    """One test (aggregated) or one exam result in the teacher analytics view."""
    kind: str
    name: str
    type: str
    subject: str
    class_name: str
    year: Optional[int] = None
    term: Optional[str] = None
    month: Optional[str] = None
    submissions: int
    average: Optional[float] = None
    highest: Optional[float] = None
    lowest: Optional[float] = None

class GroupAverage(BaseModel):
    name: str
    average: float
    count: int

class TeacherAnalyticsSummary(BaseModel):
    total_assessments: int = 0
    total_submissions: int = 0
    overall_average: float = 0
    best_subject: Optional[str] = None
    weakest_subject: Optional[str] = None

class TeacherAnalyticsResponse(BaseModel):
    filters: Dict[str, List[Any]]
    summary: TeacherAnalyticsSummary
    rows: List[PerformanceRow]
    by_subject: List[GroupAverage]
    by_class: List[GroupAverage]
    by_type: List[GroupAverage]
    by_month: List[GroupAverage]

class StudentSubjectTeacher(APIModel):
    subject_name: str
    teacher_name: str

class StudentProfileResponse(APIModel):
    student: StudentResponse
    school: SchoolResponse
    teachers: List[StudentSubjectTeacher]

class SubjectPerformance(BaseModel):
    subject: str
    average: float
    highest: float
    lowest: float
    count: int

class StudentAnalyticsResponse(BaseModel):
    total_results: int = 0
    average: float = 0
    highest: float = 0
    passing_rate: float = 0
    subjects: List[SubjectPerformance] = []

class ExamResultGroup(BaseModel):
    examination_id: str
    examination_name: str
    year: Optional[int] = None
    term_name: Optional[str] = None
    results: List[StudentResultRow]
    total: float
    average: float
    grade: str

class StudentTestResult(APIModel):
    test_id: str
    test_name: str
    type: str
    subject_name: str
    marks: float
    max_marks: float
    percentage: float
    grade: str
    created_at: Optional[datetime] = None

class StudentExamination(ExaminationResponse):
    has_results: bool = False


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str


TeacherDetailResponse.model_rebuild()
