"""
Application-wide exception handlers.

- ``RequestValidationError`` → 400 with a field-level message list.
- ``SQLAlchemyError`` escaping a route → 500 with the backend message, or 403
  when the backend reports a permission failure.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "You do not have permission to perform this action"


def _field_name(loc: tuple) -> str:
    # Drop the "body"/"query" source prefix
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "details": details,
        },
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    message = str(getattr(exc, "orig", None) or exc)
    if "permission denied" in message.lower():
        logger.warning("Permission denied on %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": PERMISSION_DENIED_MESSAGE},
        )
    logger.error("Database error on %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
