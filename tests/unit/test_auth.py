"""Unit tests for tokens, role redirects and the role dependencies."""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from herufi.core.auth import (
    create_access_token,
    dashboard_path_for_role,
    decode_token,
    get_current_admin,
    get_current_staff,
    get_current_student,
    get_current_user,
    hash_password,
    verify_password,
)

from tests.helpers import ADMIN_USER_ID, SCHOOL_ID, session_factory

AUTH = "herufi.core.auth"


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("password123")

        assert hashed != "password123"
        assert verify_password("password123", hashed)
        assert not verify_password("wrong", hashed)


class TestTokens:

    def test_round_trip_keeps_claims(self):
        payload = decode_token(create_access_token({"sub": "user-1", "role": "teacher"}))

        assert payload["sub"] == "user-1"
        assert payload["role"] == "teacher"
        assert payload["jti"]

    def test_each_token_has_its_own_id(self):
        first = decode_token(create_access_token({"sub": "user-1"}))
        second = decode_token(create_access_token({"sub": "user-1"}))

        assert first["jti"] != second["jti"]

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(minutes=-5))

        assert decode_token(token) is None

    def test_garbage_token(self):
        assert decode_token("not-a-token") is None


class TestDashboardPath:

    @pytest.mark.parametrize("role, path", [
        ("admin", "/dashboard"),
        ("super_admin", "/dashboard"),
        ("teacher", "/teacher-dashboard"),
        ("student", "/student-dashboard"),
    ])
    def test_known_roles(self, role, path):
        assert dashboard_path_for_role(role) == path

    def test_unknown_role(self):
        with pytest.raises(HTTPException) as exc:
            dashboard_path_for_role("parent")
        assert exc.value.status_code == 400


class TestGetCurrentUser:

    def _user_row(self, **overrides):
        row = {
            "id": ADMIN_USER_ID, "email": "admin@ahs.ac.ke", "role": "admin",
            "is_active": True, "school_id": SCHOOL_ID, "full_name": "Jane Admin",
        }
        row.update(overrides)
        return row

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(None))
        assert exc.value.status_code == 401

    def test_valid_token(self):
        token = create_access_token({"sub": ADMIN_USER_ID, "role": "admin"})
        fetch_one = MagicMock(side_effect=[None, self._user_row()])

        with patch(f"{AUTH}.get_db_session", session_factory(MagicMock())), \
                patch(f"{AUTH}.fetch_one", fetch_one):
            user = asyncio.run(get_current_user(_bearer(token)))

        assert user["user_id"] == ADMIN_USER_ID
        assert user["school_id"] == SCHOOL_ID
        assert user["role"] == "admin"

    def test_revoked_token(self):
        token = create_access_token({"sub": ADMIN_USER_ID})
        fetch_one = MagicMock(side_effect=[{"revoked": 1}, self._user_row()])

        with patch(f"{AUTH}.get_db_session", session_factory(MagicMock())), \
                patch(f"{AUTH}.fetch_one", fetch_one):
            with pytest.raises(HTTPException) as exc:
                asyncio.run(get_current_user(_bearer(token)))
        assert exc.value.status_code == 401

    def test_deactivated_account(self):
        token = create_access_token({"sub": ADMIN_USER_ID})
        fetch_one = MagicMock(side_effect=[None, self._user_row(is_active=False)])

        with patch(f"{AUTH}.get_db_session", session_factory(MagicMock())), \
                patch(f"{AUTH}.fetch_one", fetch_one):
            with pytest.raises(HTTPException) as exc:
                asyncio.run(get_current_user(_bearer(token)))
        assert exc.value.status_code == 403


class TestRoleDependencies:

    def test_admin_rejects_teacher(self, teacher_user):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_admin(teacher_user))
        assert exc.value.status_code == 403

    def test_admin_needs_school(self, admin_user):
        admin_user["school_id"] = None
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_admin(admin_user))
        assert exc.value.status_code == 400

    def test_staff_accepts_admin_without_teacher_profile(self, admin_user):
        user = asyncio.run(get_current_staff(admin_user))
        assert user["teacher_id"] is None

    def test_student_rejects_admin(self, admin_user):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_student(admin_user))
        assert exc.value.status_code == 403

    def test_student_profile_lookup(self):
        user = {"user_id": "u-1", "role": "student", "school_id": None}
        row = {"id": "s-1", "school_id": SCHOOL_ID, "stream_id": None}

        with patch(f"{AUTH}.get_db_session", session_factory(MagicMock())), \
                patch(f"{AUTH}.fetch_one", MagicMock(return_value=row)):
            student = asyncio.run(get_current_student(user))

        assert student["student_id"] == "s-1"
        assert student["school_id"] == SCHOOL_ID
        assert student["stream_id"] is None
