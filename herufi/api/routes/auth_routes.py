"""
Authentication Routes

POST /auth/register-school - Register a school and its administrator
POST /auth/login - Login (email, or student id on the student portal) and get JWT token
POST /auth/logout - Revoke the current token
GET /auth/me - Get current user info
PUT /auth/password - Change password
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import text

from herufi.core.auth import (
    bearer_scheme, create_access_token, dashboard_path_for_role, get_current_user,
    hash_password, sign_in, sign_out, sign_up, verify_password
)
from herufi.core.config import get_settings
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_one
from herufi.utils.identifiers import is_valid_student_username
from herufi.schemas.schemas import (
    SchoolRegisterRequest, LoginRequest, TokenResponse, UserResponse,
    PasswordChange, MessageResponse, Portal
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()
logger = get_logger(__name__)

STUDENT_ID_HINT = "Student ID must be letters followed by 4 digits (e.g. ahs2000)"


def resolve_login_email(identifier: str, portal) -> str:
    """
    Students sign in with their id (ahs2000); everyone else with an email.
    An id without '@' is treated as a student id even without a portal hint.
    """
    identifier = identifier.strip()
    if portal == Portal.student or (portal is None and "@" not in identifier):
        if not is_valid_student_username(identifier):
            raise HTTPException(status_code=400, detail=STUDENT_ID_HINT)
        return f"{identifier.lower()}@{settings.student_email_domain}"
    return identifier.lower()


def _token_response(user_id: str, role: str) -> TokenResponse:
    token = create_access_token(data={"sub": user_id, "role": role})
    return TokenResponse(
        access_token=token,
        user_id=user_id,
        role=role,
        dashboard=dashboard_path_for_role(role)
    )


@router.post("/register-school", response_model=TokenResponse, status_code=201)
async def register_school(request: SchoolRegisterRequest):
    """
    Register a new school together with its administrator account.

    The school code becomes the prefix of every admission number.
    """
    with get_db_session() as db:
        existing = fetch_one(db, "SELECT id FROM schools WHERE code = :code", {"code": request.code})
        if existing:
            raise HTTPException(status_code=409, detail="School code already taken")

        result = db.execute(
            text("""
                INSERT INTO schools (school_name, code)
                VALUES (:school_name, :code)
                RETURNING id
            """),
            {"school_name": request.school_name.strip(), "code": request.code}
        )
        school_id = str(result.fetchone()[0])

        user_id = sign_up(
            db,
            email=request.email,
            password=request.password,
            role="admin",
            full_name=request.full_name,
            school_id=school_id,
            metadata={"role": "admin", "school_name": request.school_name, "school_code": request.code}
        )

    logger.info("school_registered", school_id=school_id, code=request.code)
    return _token_response(user_id, "admin")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    The dashboard field is where the UI should redirect for this account's role.
    """
    email = resolve_login_email(request.identifier, request.portal)
    account = sign_in(email, request.password)
    logger.info("login", user_id=account["user_id"], role=account["role"])
    return _token_response(account["user_id"], account["role"])


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    user: dict = Depends(get_current_user)
):
    """Revoke the token used for this request."""
    sign_out(credentials.credentials)
    logger.info("logout", user_id=user["user_id"])
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return UserResponse(**user)


@router.put("/password", response_model=MessageResponse)
async def change_password(data: PasswordChange, user: dict = Depends(get_current_user)):
    """Change own password. The current password must be supplied."""
    with get_db_session() as db:
        row = fetch_one(db, "SELECT password_hash FROM users WHERE id = :id", {"id": user["user_id"]})
        if not row or not verify_password(data.current_password, row["password_hash"]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        db.execute(
            text("UPDATE users SET password_hash = :hash, updated_at = NOW() WHERE id = :id"),
            {"hash": hash_password(data.new_password), "id": user["user_id"]}
        )

    return MessageResponse(message="Password updated")
