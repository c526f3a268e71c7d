"""Integration tests for router wiring, authentication and health endpoints."""

from unittest.mock import patch

import pytest

from herufi.core.auth import create_access_token, get_current_user


class TestAPIRouting:
    """Every area of the portal is mounted under /api."""

    @pytest.mark.parametrize("path", [
        "/api/auth/register-school",
        "/api/auth/login",
        "/api/auth/logout",
        "/api/schools/me",
        "/api/students",
        "/api/students/batch",
        "/api/teachers/batch",
        "/api/teachers/batch/upload",
        "/api/classes/{class_id}/streams",
        "/api/classes/{class_id}/subject-assignments",
        "/api/classes/{class_id}/all-results",
        "/api/subjects",
        "/api/terms",
        "/api/examinations/{examination_id}/results",
        "/api/results",
        "/api/results/sheet",
        "/api/tests/{test_id}/results",
        "/api/assessments",
        "/api/timetable/{class_id}/{stream_id}",
        "/api/timetable/{class_id}/{stream_id}/{slot_id}",
        "/api/suggestions/teachers/{school_id}/{class_id}",
        "/api/dashboard/admin",
        "/api/dashboard/teacher",
        "/api/dashboard/teacher/analytics",
        "/api/dashboard/student",
        "/api/dashboard/student/analytics",
    ])
    def test_route_registered(self, app, path):
        assert path in [route.path for route in app.routes]


class TestAuthentication:

    @pytest.mark.parametrize("method, path", [
        ("get", "/api/students"),
        ("get", "/api/dashboard/admin"),
        ("get", "/api/auth/me"),
        ("get", "/api/dashboard/student"),
    ])
    def test_requires_token(self, client, method, path):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401

    def test_admin_route_rejects_teacher(self, teacher_client):
        response = teacher_client.get("/api/students")

        assert response.status_code == 403


class TestHealth:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_reports_database(self, client):
        with patch("herufi.main.test_postgres_connection", return_value=False):
            response = client.get("/health")

        assert response.json() == {"status": "degraded", "postgres": "disconnected"}


class TestLogin:

    def test_student_portal_rejects_malformed_id(self, client):
        response = client.post(
            "/api/auth/login",
            json={"identifier": "ahs/2000", "password": "password123", "portal": "student"},
        )

        assert response.status_code == 400
        assert "letters followed by 4 digits" in response.json()["detail"]

    def test_student_id_maps_to_login_email(self, client):
        with patch(
            "herufi.api.routes.auth_routes.sign_in",
            return_value={"user_id": "user-1", "role": "student"},
        ) as sign_in:
            response = client.post(
                "/api/auth/login",
                json={"identifier": "AHS2000", "password": "password123", "portal": "student"},
            )

        assert response.status_code == 200
        sign_in.assert_called_once_with("ahs2000@herufi.app", "password123")
        body = response.json()
        assert body["dashboard"] == "/student-dashboard"
        assert body["token_type"] == "bearer"

    def test_staff_redirect_follows_stored_role(self, client):
        with patch(
            "herufi.api.routes.auth_routes.sign_in",
            return_value={"user_id": "user-2", "role": "teacher"},
        ):
            response = client.post(
                "/api/auth/login",
                json={"identifier": "Teacher@AHS.ac.ke", "password": "secret", "portal": "teacher"},
            )

        assert response.status_code == 200
        assert response.json()["dashboard"] == "/teacher-dashboard"

    def test_logout_revokes_token(self, app, client, admin_user):
        app.dependency_overrides[get_current_user] = lambda: admin_user
        token = create_access_token({"sub": admin_user["user_id"], "role": "admin"})

        with patch("herufi.api.routes.auth_routes.sign_out") as sign_out:
            response = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        sign_out.assert_called_once_with(token)
