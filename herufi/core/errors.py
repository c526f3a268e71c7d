"""
Error handling - turns database failures into HTTP error responses.

Route handlers raise HTTPException for validation failures. Anything the
database rejects propagates out of get_db_session() (after rollback) and is
mapped here, so every error body has the same {"detail": message} shape.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

from herufi.core.logging import get_logger

logger = get_logger(__name__)


def database_error_message(exc: SQLAlchemyError) -> str:
    """Extract the driver's message (first line) from a SQLAlchemy error."""
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    return message.strip().splitlines()[0] if message.strip() else "Database error"


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    message = database_error_message(exc)
    logger.warning("integrity_error", path=request.url.path, error=message)
    return JSONResponse(status_code=409, content={"detail": message})


async def data_error_handler(request: Request, exc: DataError) -> JSONResponse:
    message = database_error_message(exc)
    logger.warning("data_error", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"detail": message})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    message = database_error_message(exc)
    logger.error("database_error", path=request.url.path, error=message)
    return JSONResponse(status_code=500, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the database error handlers (most specific first)."""
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DataError, data_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
