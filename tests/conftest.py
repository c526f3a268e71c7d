"""Pytest configuration and shared fixtures.

No test needs a database: route tests override the auth dependencies and
replace get_db_session with a context manager yielding a MagicMock session.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from herufi.core.auth import (
    get_current_admin,
    get_current_staff,
    get_current_student,
    get_current_teacher,
    get_current_user,
)
from herufi.main import app as herufi_app

from tests.helpers import ADMIN_USER_ID, SCHOOL_ID, TEACHER_ID


@pytest.fixture
def admin_user() -> dict:
    return {
        "user_id": ADMIN_USER_ID,
        "email": "admin@ahs.ac.ke",
        "role": "admin",
        "school_id": SCHOOL_ID,
        "full_name": "Jane Admin",
        "teacher_id": None,
    }


@pytest.fixture
def teacher_user() -> dict:
    return {
        "user_id": "7c6b5a49-3827-4160-9f8e-7d6c5b4a3928",
        "email": "teacher@ahs.ac.ke",
        "role": "teacher",
        "school_id": SCHOOL_ID,
        "full_name": "John Teacher",
        "teacher_id": TEACHER_ID,
        "teacher_name": "John Teacher",
    }


@pytest.fixture
def mock_db() -> MagicMock:
    return MagicMock()


@pytest.fixture
def app():
    yield herufi_app
    herufi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_client(app, admin_user) -> TestClient:
    """Client authenticated as a school administrator."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    app.dependency_overrides[get_current_admin] = lambda: admin_user
    app.dependency_overrides[get_current_staff] = lambda: admin_user
    return TestClient(app)


@pytest.fixture
def teacher_client(app, teacher_user) -> TestClient:
    """Client authenticated as a teacher."""
    app.dependency_overrides[get_current_user] = lambda: teacher_user
    app.dependency_overrides[get_current_teacher] = lambda: teacher_user
    app.dependency_overrides[get_current_staff] = lambda: teacher_user
    return TestClient(app)


@pytest.fixture
def student_dependency(app):
    """Register a student override (used by dashboard tests)."""
    def _override(student: dict):
        app.dependency_overrides[get_current_user] = lambda: student
        app.dependency_overrides[get_current_student] = lambda: student
        return TestClient(app)
    return _override
