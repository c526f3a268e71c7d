"""Shared ids and a stand-in for get_db_session() used across the test suite."""

from contextlib import contextmanager

SCHOOL_ID = "5b8f9a6e-2c1d-4f3a-9b7e-0d1c2b3a4f5e"
ADMIN_USER_ID = "0f1e2d3c-4b5a-4968-8776-a5b4c3d2e1f0"
TEACHER_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"
CLASS_ID = "1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"
STREAM_ID = "2b3c4d5e-6f7a-4b8c-9d0e-1f2a3b4c5d6e"
SUBJECT_ID = "3c4d5e6f-7a8b-4c9d-8e0f-2a3b4c5d6e7f"
EXAMINATION_ID = "4d5e6f7a-8b9c-4d0e-9f1a-3b4c5d6e7f8a"


def session_factory(db):
    """Replacement for get_db_session() that always yields the given mock session."""
    @contextmanager
    def fake_session():
        yield db
    return fake_session
