"""
Authentication Utility - accounts, passwords and JWT handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification (with revocable token ids)
- Account sign-up / sign-in / sign-out against the users + profiles tables
- FastAPI dependencies for protected routes, one per portal role
"""

import json
import uuid
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text
from sqlalchemy.orm import Session

from herufi.core.config import get_settings
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_one

settings = get_settings()
logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = ("admin", "super_admin")

# Where each role lands after sign-in
DASHBOARD_PATHS = {
    "super_admin": "/dashboard",
    "admin": "/dashboard",
    "teacher": "/teacher-dashboard",
    "student": "/student-dashboard",
}


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token. Every token gets a unique jti so it can be revoked."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def dashboard_path_for_role(role: str) -> str:
    """Redirect target for a signed-in account."""
    if role not in DASHBOARD_PATHS:
        raise HTTPException(status_code=400, detail="Invalid role")
    return DASHBOARD_PATHS[role]


# ============================================================
# ACCOUNT OPERATIONS
# ============================================================

def sign_up(
    db: Session,
    email: str,
    password: str,
    role: str,
    full_name: Optional[str] = None,
    school_id: Optional[str] = None,
    metadata: Optional[dict] = None
) -> str:
    """
    Create a login account and its profile in the caller's transaction.

    Returns:
        The new user id
    """
    email = email.strip().lower()
    existing = db.execute(
        text("SELECT id FROM users WHERE email = :email"),
        {"email": email}
    ).fetchone()
    if existing:
        raise HTTPException(status_code=409, detail="Email already registered")

    result = db.execute(
        text("""
            INSERT INTO users (email, password_hash, role, user_metadata)
            VALUES (:email, :password_hash, :role, CAST(:metadata AS JSONB))
            RETURNING id
        """),
        {
            "email": email,
            "password_hash": hash_password(password),
            "role": role,
            "metadata": json.dumps(metadata or {}, default=str),
        }
    )
    user_id = str(result.fetchone()[0])

    db.execute(
        text("""
            INSERT INTO profiles (id, school_id, full_name, email, role)
            VALUES (:id, :school_id, :full_name, :email, :role)
        """),
        {"id": user_id, "school_id": school_id, "full_name": full_name, "email": email, "role": role}
    )
    logger.info("account_created", user_id=user_id, role=role, school_id=school_id)
    return user_id


def sign_in(email: str, password: str) -> dict:
    """Verify credentials and return {user_id, role}. Raises 401/403."""
    with get_db_session() as db:
        user = fetch_one(
            db,
            "SELECT id, password_hash, role, is_active FROM users WHERE email = :email",
            {"email": email.strip().lower()}
        )

    if not user or not verify_password(password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid login credentials")

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {"user_id": str(user["id"]), "role": user["role"]}


def sign_out(token: str) -> None:
    """Revoke a token by remembering its jti until it would have expired anyway."""
    payload = decode_token(token)
    if not payload or not payload.get("jti"):
        return
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO revoked_tokens (jti, user_id, expires_at)
                VALUES (:jti, :user_id, to_timestamp(:exp))
                ON CONFLICT (jti) DO NOTHING
            """),
            {"jti": payload["jti"], "user_id": payload.get("sub"), "exp": payload.get("exp")}
        )


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user with their school.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise credentials_exception

    with get_db_session() as db:
        revoked = fetch_one(db, "SELECT 1 AS revoked FROM revoked_tokens WHERE jti = :jti", {"jti": payload.get("jti")})
        user = fetch_one(
            db,
            """
            SELECT u.id, u.email, u.role, u.is_active, p.school_id, p.full_name
            FROM users u LEFT JOIN profiles p ON p.id = u.id
            WHERE u.id = :id
            """,
            {"id": payload["sub"]}
        )

    if revoked or not user:
        raise credentials_exception

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {
        "user_id": str(user["id"]),
        "email": user["email"],
        "role": user["role"],
        "school_id": str(user["school_id"]) if user["school_id"] else None,
        "full_name": user["full_name"],
    }


async def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require a school administrator with a school."""
    if user["role"] not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="School administrators only")
    if not user["school_id"]:
        raise HTTPException(status_code=400, detail="No school associated with your account")
    return user


async def get_current_teacher(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require teacher role and get teacher_id."""
    if user["role"] != "teacher":
        raise HTTPException(status_code=403, detail="Teachers only")

    with get_db_session() as db:
        row = fetch_one(
            db,
            "SELECT id, school_id, first_name, last_name FROM teachers WHERE user_id = :id",
            {"id": user["user_id"]}
        )

    if not row:
        raise HTTPException(status_code=404, detail="Teacher profile not found")

    user["teacher_id"] = str(row["id"])
    user["school_id"] = str(row["school_id"])
    user["teacher_name"] = f"{row['first_name']} {row['last_name']}"
    return user


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require student role and get student_id."""
    if user["role"] != "student":
        raise HTTPException(status_code=403, detail="Students only")

    with get_db_session() as db:
        row = fetch_one(
            db,
            "SELECT id, school_id, stream_id FROM students WHERE user_id = :id",
            {"id": user["user_id"]}
        )

    if not row:
        raise HTTPException(status_code=404, detail="Student profile not found")

    user["student_id"] = str(row["id"])
    user["school_id"] = str(row["school_id"])
    user["stream_id"] = str(row["stream_id"]) if row["stream_id"] else None
    return user


async def get_current_staff(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Admins and teachers (e.g. result entry). Teachers get teacher_id."""
    if user["role"] in ADMIN_ROLES:
        if not user["school_id"]:
            raise HTTPException(status_code=400, detail="No school associated with your account")
        user["teacher_id"] = None
        return user
    return await get_current_teacher(user)
