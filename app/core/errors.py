"""
Exception hierarchy and error reporting for the Users API.

Client errors (400 / 404) are raised as `UsersAPIError` subclasses and turned
into `{status, message, errors}` by `users_api_exception_handler`. Anything
else escapes to `ErrorReporterMiddleware`, the only place that writes the
500 `{status, message, error}` envelope.
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class UsersAPIError(Exception):
    """Base class for errors that map to a client-facing envelope."""
    http_status: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad request"

    def __init__(self, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"status": self.http_status, "message": self.message, "errors": self.errors}


class ValidationFailedError(UsersAPIError):
    http_status = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class InvalidUserIdError(UsersAPIError):
    http_status = status.HTTP_400_BAD_REQUEST
    message = "Invalid user ID"


class UserNotFoundError(UsersAPIError):
    http_status = status.HTTP_404_NOT_FOUND
    message = "User not found"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__([f"No user found with ID {user_id}"])


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def users_api_exception_handler(request: Request, exc: UsersAPIError) -> JSONResponse:
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.http_status, exc.errors)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies that FastAPI rejects before our validators run (bad JSON)."""
    errors = [error["msg"] for error in exc.errors()] or ["Request body could not be parsed"]
    return await users_api_exception_handler(request, ValidationFailedError(errors))


# ---------------------------------------------------------------------------
# Unhandled faults
# ---------------------------------------------------------------------------

def describe_fault(exc: BaseException) -> str:
    """Client-safe description of a failure. SQL text and parameters are never included."""
    if isinstance(exc, SQLAlchemyError):
        return f"Database error: {exc.__class__.__name__}"
    return str(exc) or exc.__class__.__name__


def fault_response(exc: BaseException) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "message": "Something broke!",
            "error": describe_fault(exc),
        },
    )


class ErrorReporterMiddleware:
    """
    Terminal handler for exceptions no exception handler claimed.

    If the response has not started, log and send the 500 envelope. If it
    has, a second response cannot be written: log and re-raise so the server
    aborts the connection.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            if response_started:
                raise
            await fault_response(exc)(scope, receive, send)
