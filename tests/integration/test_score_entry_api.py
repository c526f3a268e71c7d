"""Integration tests for exam score entry and class test marks."""

from unittest.mock import MagicMock, patch

import pytest

from tests.helpers import CLASS_ID, EXAMINATION_ID, SCHOOL_ID, SUBJECT_ID, session_factory

RESULTS = "herufi.api.routes.result_routes"
TESTS = "herufi.api.routes.class_test_routes"

STUDENT_A = "6f7a8b9c-0d1e-4f2a-8b3c-4d5e6f7a8b9c"
STUDENT_B = "7a8b9c0d-1e2f-4a3b-9c4d-5e6f7a8b9c0d"


def _upload(*scores):
    return {
        "examination_id": EXAMINATION_ID,
        "subject_id": SUBJECT_ID,
        "scores": [
            {"student_id": student, "score": score}
            for student, score in zip([STUDENT_A, STUDENT_B], scores)
        ],
    }


class TestSaveResults:

    def test_invalid_scores_block_the_save(self, admin_client, mock_db):
        with patch(f"{RESULTS}.get_db_session", session_factory(mock_db)):
            response = admin_client.put("/api/results", json=_upload(105, -2))

        assert response.status_code == 400
        assert response.json()["detail"] == "Please fix 2 invalid scores before saving"
        mock_db.execute.assert_not_called()

    def test_all_blank(self, admin_client):
        response = admin_client.put("/api/results", json=_upload(None, None))

        assert response.status_code == 400
        assert response.json()["detail"] == "No scores to save"

    def test_saves_with_grades_and_skips_blanks(self, admin_client, mock_db):
        with patch(f"{RESULTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{RESULTS}.require_examination"), \
                patch(f"{RESULTS}.require_subject"), \
                patch(f"{RESULTS}.fetch_all", return_value=[{"id": STUDENT_A}]):
            response = admin_client.put("/api/results", json=_upload(84, None))

        assert response.status_code == 200
        assert response.json()["message"] == "Saved 1 results"

        params = mock_db.execute.call_args.args[1]
        assert params == [{
            "student_id": STUDENT_A,
            "subject_id": SUBJECT_ID,
            "examination_id": EXAMINATION_ID,
            "teacher_id": None,
            "score": 84.0,
            "grade": "A",
            "remarks": "Very Good",
        }]

    def test_unknown_student(self, admin_client, mock_db):
        with patch(f"{RESULTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{RESULTS}.require_examination"), \
                patch(f"{RESULTS}.require_subject"), \
                patch(f"{RESULTS}.fetch_all", return_value=[{"id": STUDENT_A}]):
            response = admin_client.put("/api/results", json=_upload(50, 60))

        assert response.status_code == 404
        mock_db.execute.assert_not_called()

    def test_teacher_is_recorded_on_results(self, teacher_client, teacher_user, mock_db):
        with patch(f"{RESULTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{RESULTS}.require_examination"), \
                patch(f"{RESULTS}.require_subject"), \
                patch(f"{RESULTS}.fetch_all", return_value=[{"id": STUDENT_A}]):
            response = teacher_client.put("/api/results", json=_upload(35))

        assert response.status_code == 200
        params = mock_db.execute.call_args.args[1]
        assert params[0]["teacher_id"] == teacher_user["teacher_id"]
        assert params[0]["grade"] == "F"


class TestSaveTestMarks:

    @pytest.fixture
    def own_test(self):
        return {"id": "test-1", "max_marks": 20, "class_id": CLASS_ID, "stream_id": None}

    def test_marks_checked_against_max_marks(self, teacher_client, mock_db, own_test):
        with patch(f"{TESTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{TESTS}.fetch_own_test", return_value=own_test):
            response = teacher_client.put(
                "/api/tests/test-1/results",
                json={"marks": [{"student_id": STUDENT_A, "marks": 21}, {"student_id": STUDENT_B, "marks": 20}]},
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "Please fix 1 invalid marks before saving"

    def test_no_marks(self, teacher_client, mock_db, own_test):
        with patch(f"{TESTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{TESTS}.fetch_own_test", return_value=own_test):
            response = teacher_client.put(
                "/api/tests/test-1/results",
                json={"marks": [{"student_id": STUDENT_A, "marks": None}]},
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "No marks to save"

    def test_grade_uses_percentage(self, teacher_client, mock_db, own_test):
        with patch(f"{TESTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{TESTS}.fetch_own_test", return_value=own_test), \
                patch(f"{TESTS}.fetch_all", return_value=[{"id": STUDENT_A}]):
            response = teacher_client.put(
                "/api/tests/test-1/results",
                json={"marks": [{"student_id": STUDENT_A, "marks": 14}]},
            )

        assert response.status_code == 200
        assert mock_db.execute.call_args.args[1][0]["grade"] == "B"

    def test_student_outside_test_class(self, teacher_client, mock_db, own_test):
        with patch(f"{TESTS}.get_db_session", session_factory(mock_db)), \
                patch(f"{TESTS}.fetch_own_test", return_value=own_test), \
                patch(f"{TESTS}.fetch_all", return_value=[{"id": STUDENT_A}]) as fetch_all:
            response = teacher_client.put(
                "/api/tests/test-1/results",
                json={"marks": [{"student_id": STUDENT_A, "marks": 14}, {"student_id": STUDENT_B, "marks": 9}]},
            )

        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found in this test's class"
        mock_db.execute.assert_not_called()

        params = fetch_all.call_args.args[2]
        assert params["school_id"] == SCHOOL_ID
        assert params["class_id"] == CLASS_ID
        assert sorted(params["ids"]) == sorted([STUDENT_A, STUDENT_B])

    def test_other_teachers_test(self, teacher_client):
        db = MagicMock()
        with patch(f"{TESTS}.get_db_session", session_factory(db)), \
                patch(f"{TESTS}.fetch_one", return_value=None):
            response = teacher_client.put(
                "/api/tests/test-1/results",
                json={"marks": [{"student_id": STUDENT_A, "marks": 14}]},
            )

        assert response.status_code == 404
        assert response.json()["detail"] == "Test not found"
