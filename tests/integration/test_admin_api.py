"""Integration tests for timetables, students, batch imports, examinations and the class gradebook."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from tests.helpers import CLASS_ID, EXAMINATION_ID, SCHOOL_ID, STREAM_ID, TEACHER_ID, session_factory

TIMETABLE = "herufi.api.routes.timetable_routes"
SERVICE = "herufi.services.batch_import_service"
STUDENTS = "herufi.api.routes.student_routes"
CLASSES = "herufi.api.routes.class_routes"
ASSESSMENTS = "herufi.api.routes.assessment_routes"
EXAMS = "herufi.api.routes.examination_routes"

SLOT = {"day": "Monday", "subject": "Mathematics", "start_time": "08:00", "end_time": "08:40"}


class TestTimetable:

    def test_first_slot_creates_timetable(self, admin_client, mock_db):
        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.load_timetable", return_value=None):
            response = admin_client.post(f"/api/timetable/{CLASS_ID}/{STREAM_ID}", json=SLOT)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Timetable created"
        assert body["slots"][0]["day"] == "monday"
        assert body["slots"][0]["id"]
        mock_db.execute.assert_called_once()

    def test_slot_appended_to_existing_timetable(self, admin_client, mock_db):
        existing = {"id": "tt-1", "time_slots": [dict(SLOT, id="slot-1", day="monday")]}

        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.require_teacher") as require_teacher, \
                patch(f"{TIMETABLE}.load_timetable", return_value=existing):
            response = admin_client.post(
                f"/api/timetable/{CLASS_ID}/{STREAM_ID}",
                json=dict(SLOT, start_time="09:00", end_time="09:40", teacher_id=TEACHER_ID),
            )

        assert response.status_code == 200
        assert response.json()["message"] == "Slot added"
        assert len(response.json()["slots"]) == 2
        require_teacher.assert_called_once_with(mock_db, TEACHER_ID, SCHOOL_ID)

    def test_start_must_precede_end(self, admin_client):
        response = admin_client.post(
            f"/api/timetable/{CLASS_ID}/{STREAM_ID}",
            json=dict(SLOT, start_time="10:00", end_time="09:00"),
        )

        assert response.status_code == 422

    def test_missing_timetable_reads_as_empty(self, admin_client, mock_db):
        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.load_timetable", return_value=None):
            response = admin_client.get(f"/api/timetable/{CLASS_ID}/{STREAM_ID}")

        assert response.status_code == 200
        assert response.json() == []

    def test_edit_slot_in_place(self, admin_client, mock_db):
        existing = {
            "id": "tt-1",
            "time_slots": [
                dict(SLOT, id="slot-1", day="monday"),
                dict(SLOT, id="slot-2", day="tuesday"),
            ],
        }

        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.load_timetable", return_value=existing), \
                patch(f"{TIMETABLE}.save_slots") as save_slots:
            response = admin_client.put(
                f"/api/timetable/{CLASS_ID}/{STREAM_ID}/slot-1",
                json=dict(SLOT, subject="Physics", start_time="10:00", end_time="10:40"),
            )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Slot updated"
        assert [s["id"] for s in body["slots"]] == ["slot-1", "slot-2"]
        assert body["slots"][0]["subject"] == "Physics"
        assert body["slots"][0]["start_time"] == "10:00"
        assert save_slots.call_args.args[1] == "tt-1"

    def test_edit_unknown_slot(self, admin_client, mock_db):
        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.load_timetable", return_value=None):
            response = admin_client.put(f"/api/timetable/{CLASS_ID}/{STREAM_ID}/slot-9", json=SLOT)

        assert response.status_code == 404
        mock_db.execute.assert_not_called()

    def test_remove_unknown_slot(self, admin_client, mock_db):
        existing = {"id": "tt-1", "time_slots": [dict(SLOT, id="slot-1", day="monday")]}

        with patch(f"{TIMETABLE}.get_db_session", session_factory(mock_db)), \
                patch(f"{TIMETABLE}.require_stream"), \
                patch(f"{TIMETABLE}.load_timetable", return_value=existing):
            response = admin_client.delete(f"/api/timetable/{CLASS_ID}/{STREAM_ID}/slot-9")

        assert response.status_code == 404
        assert response.json()["detail"] == "Time slot not found"


class TestTeacherBatch:

    def test_json_rows_are_numbered_from_two(self, admin_client, mock_db):
        rows = [
            {"employee_number": "T01", "first_name": "Grace", "last_name": "Wanjiku"},
            {"employee_number": "T02", "first_name": "Peter", "last_name": "Kamau", "email": "bad"},
            {"first_name": "Ann", "last_name": "Mutua"},
        ]

        with patch(f"{SERVICE}.get_db_session", session_factory(mock_db)):
            response = admin_client.post("/api/teachers/batch", json=rows)

        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 1
        assert body["error_count"] == 2
        assert [(e["row"], e["employee_number"]) for e in body["errors"]] == [(3, "T02"), (4, "N/A")]

    def test_non_object_rows_reported_per_row(self, admin_client, mock_db):
        rows = [
            {"employee_number": "T01", "first_name": "Grace", "last_name": "Wanjiku"},
            "T02,Peter,Kamau",
            ["T03", "Ann", "Mutua"],
        ]

        with patch(f"{SERVICE}.get_db_session", session_factory(mock_db)):
            response = admin_client.post("/api/teachers/batch", json=rows)

        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 1
        assert body["errors"] == [
            {"row": 3, "employee_number": "N/A", "message": "Row must be an object"},
            {"row": 4, "employee_number": "N/A", "message": "Row must be an object"},
        ]

    def test_file_upload_records_batch(self, admin_client, mock_db):
        mock_db.execute.return_value.fetchone.return_value = ("batch-1",)
        content = b"Employee Number,First Name,Last Name\nT01,Grace,Wanjiku\nT02,Peter\n"

        with patch(f"{SERVICE}.get_db_session", session_factory(mock_db)):
            response = admin_client.post(
                "/api/teachers/batch/upload",
                files={"file": ("teachers.csv", content, "text/csv")},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["batch_import_id"] == "batch-1"
        assert body["success_count"] == 1
        assert body["errors"] == [
            {"row": 3, "employee_number": "N/A", "message": "Column count mismatch (expected 3, got 2)"}
        ]


class TestStudentBatch:

    def test_upload_imports_into_stream(self, admin_client, mock_db):
        content = b"admission_number,first_name,last_name\nAHS/1,Amina,Otieno\n"
        service = MagicMock()
        service.import_students.return_value = {
            "batch_import_id": "batch-1", "success_count": 1, "failed_count": 0, "report": ["Row 2: Success"],
        }

        with patch(f"{STUDENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{STUDENTS}.get_school", return_value={"id": SCHOOL_ID, "code": "AHS"}), \
                patch(f"{STUDENTS}.require_stream"), \
                patch(f"{STUDENTS}.get_batch_import_service", return_value=service):
            response = admin_client.post(
                "/api/students/batch",
                files={"file": ("students.csv", content, "text/csv")},
                data={"stream_id": STREAM_ID},
            )

        assert response.status_code == 200
        assert response.json()["report"] == ["Row 2: Success"]
        kwargs = service.import_students.call_args.kwargs
        assert kwargs["school"] == {"id": SCHOOL_ID, "code": "AHS"}
        assert kwargs["stream_id"] == STREAM_ID
        assert kwargs["file_name"] == "students.csv"

    def test_rejects_unsupported_file(self, admin_client):
        response = admin_client.post(
            "/api/students/batch",
            files={"file": ("students.pdf", b"%PDF", "application/pdf")},
            data={"stream_id": STREAM_ID},
        )

        assert response.status_code == 400


class TestClassGradebook:

    def test_only_class_teacher(self, teacher_client, mock_db):
        with patch(f"{CLASSES}.get_db_session", session_factory(mock_db)), \
                patch(f"{CLASSES}.fetch_class", return_value={"id": CLASS_ID, "class_teacher_id": "someone-else"}):
            response = teacher_client.get(f"/api/classes/{CLASS_ID}/all-results")

        assert response.status_code == 403
        assert response.json()["detail"] == "Only the class teacher can view all results"


class TestCreateStudent:

    @pytest.fixture
    def student_row(self):
        return {
            "id": "student-1", "admission_number": "AHS/12", "first_name": "Amina",
            "last_name": "Otieno", "stream_id": STREAM_ID,
        }

    def _post(self, admin_client, admission_number):
        return admin_client.post("/api/students", json={
            "admission_number": admission_number,
            "first_name": "Amina",
            "last_name": "Otieno",
            "stream_id": STREAM_ID,
        })

    def test_wrong_school_code_gets_format_hint(self, admin_client, mock_db):
        with patch(f"{STUDENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{STUDENTS}.get_school", return_value={"id": SCHOOL_ID, "code": "AHS"}):
            response = self._post(admin_client, "XYZ/12")

        assert response.status_code == 400
        assert response.json()["detail"] == "Admission number must be in format AHS/0 – AHS/9999"
        mock_db.execute.assert_not_called()

    def test_existing_admission_number_updates_student(self, admin_client, mock_db, student_row):
        with patch(f"{STUDENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{STUDENTS}.get_school", return_value={"id": SCHOOL_ID, "code": "AHS"}), \
                patch(f"{STUDENTS}.require_stream"), \
                patch(f"{STUDENTS}.fetch_one", side_effect=[{"id": "student-1"}, student_row]) as fetch_one, \
                patch(f"{STUDENTS}.sign_up") as sign_up:
            response = self._post(admin_client, "ahs/0012")

        assert response.status_code == 201
        assert response.json()["id"] == "student-1"
        sign_up.assert_not_called()

        lookup = fetch_one.call_args_list[0].args[2]
        assert lookup == {"school_id": SCHOOL_ID, "admission_number": "AHS/12"}
        params = mock_db.execute.call_args.args[1]
        assert params["id"] == "student-1"
        assert params["first_name"] == "Amina"

    def test_new_student_gets_login_account(self, admin_client, mock_db, student_row):
        mock_db.execute.return_value.fetchone.return_value = ("student-1",)

        with patch(f"{STUDENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{STUDENTS}.get_school", return_value={"id": SCHOOL_ID, "code": "AHS"}), \
                patch(f"{STUDENTS}.require_stream"), \
                patch(f"{STUDENTS}.fetch_one", side_effect=[None, student_row]), \
                patch(f"{STUDENTS}.sign_up", return_value="user-1") as sign_up:
            response = self._post(admin_client, "AHS/12")

        assert response.status_code == 201
        kwargs = sign_up.call_args.kwargs
        assert kwargs["email"] == "ahs0012@herufi.app"
        assert kwargs["password"] == "password123"
        assert kwargs["role"] == "student"

        params = mock_db.execute.call_args.args[1]
        assert params["user_id"] == "user-1"
        assert params["admission_number"] == "AHS/12"


class TestGradeAssessment:

    @pytest.fixture
    def assessment(self):
        return {"id": "assessment-1", "class_id": CLASS_ID, "max_score": 20}

    def test_only_class_teacher_can_grade(self, teacher_client, mock_db, assessment):
        with patch(f"{ASSESSMENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{ASSESSMENTS}.fetch_one", side_effect=[assessment, {"class_teacher_id": "someone-else"}]):
            response = teacher_client.put(
                "/api/assessments/assessment-1/results/student-1", json={"score": 15}
            )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only the class teacher can grade this class"
        mock_db.execute.assert_not_called()

    def test_class_teacher_grades_student(self, teacher_client, teacher_user, mock_db, assessment):
        mock_db.execute.return_value.mappings.return_value.first.return_value = {
            "id": "result-1", "student_id": "student-1", "assessment_id": "assessment-1",
            "score": 15, "graded_by": teacher_user["user_id"], "graded_at": None,
        }

        with patch(f"{ASSESSMENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{ASSESSMENTS}.fetch_one", side_effect=[
                    assessment, {"class_teacher_id": TEACHER_ID}, {"id": "student-1"}, None,
                ]):
            response = teacher_client.put(
                "/api/assessments/assessment-1/results/student-1", json={"score": 15}
            )

        assert response.status_code == 200
        assert response.json()["score"] == 15.0
        params = mock_db.execute.call_args.args[1]
        assert params["graded_by"] == teacher_user["user_id"]

    def test_score_above_max(self, teacher_client, mock_db, assessment):
        with patch(f"{ASSESSMENTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{ASSESSMENTS}.fetch_one", side_effect=[assessment, {"class_teacher_id": TEACHER_ID}]):
            response = teacher_client.put(
                "/api/assessments/assessment-1/results/student-1", json={"score": 21}
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "Score must be between 0 and 20"


class TestUpdateExamination:

    @pytest.fixture
    def examination(self):
        return {
            "id": EXAMINATION_ID, "name": "Mid Term", "term_id": None, "year": 2026,
            "start_date": date(2026, 6, 10), "end_date": date(2026, 6, 20),
        }

    def test_new_end_checked_against_stored_start(self, admin_client, mock_db, examination):
        with patch(f"{EXAMS}.get_db_session", session_factory(mock_db)), \
                patch(f"{EXAMS}.require_examination", return_value=examination):
            response = admin_client.put(f"/api/examinations/{EXAMINATION_ID}", json={"end_date": "2026-06-01"})

        assert response.status_code == 400
        assert response.json()["detail"] == "End date must be on or after start date"
        mock_db.execute.assert_not_called()

    def test_new_start_checked_against_stored_end(self, admin_client, mock_db, examination):
        with patch(f"{EXAMS}.get_db_session", session_factory(mock_db)), \
                patch(f"{EXAMS}.require_examination", return_value=examination):
            response = admin_client.put(f"/api/examinations/{EXAMINATION_ID}", json={"start_date": "2026-06-21"})

        assert response.status_code == 400

    def test_valid_change_is_saved(self, admin_client, mock_db, examination):
        with patch(f"{EXAMS}.get_db_session", session_factory(mock_db)), \
                patch(f"{EXAMS}.require_examination", return_value=examination):
            response = admin_client.put(f"/api/examinations/{EXAMINATION_ID}", json={"end_date": "2026-06-25"})

        assert response.status_code == 200
        params = mock_db.execute.call_args.args[1]
        assert params == {"end_date": "2026-06-25", "id": EXAMINATION_ID}
