"""
Custom exception hierarchy for the LastMove notification service.

Rule: every HTTP error has a machine-readable `code` string so clients
(cron callers, the admin page) can branch on it without parsing English
messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class LastMoveException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class PushNotConfiguredError(LastMoveException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "PUSH_NOT_CONFIGURED"

    def __init__(self, missing: list[str]):
        super().__init__(
            message="Push delivery is not configured. Set the VAPID key pair.",
            details={"missing": missing},
        )


class SubscriptionNotFoundError(LastMoveException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SUBSCRIPTION_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__(
            message=f"User {user_id} has no push subscription.",
            details={"user_id": user_id},
        )


class InvalidSubscriptionError(LastMoveException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_SUBSCRIPTION"

    def __init__(self, user_id: int, reason: str):
        super().__init__(
            message=f"Stored push subscription for user {user_id} is unusable: {reason}",
            details={"user_id": user_id, "reason": reason},
        )


class UserNotFoundError(LastMoveException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__(
            message=f"User {user_id} does not exist.",
            details={"user_id": user_id},
        )


class UnknownActionError(LastMoveException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "UNKNOWN_ACTION"

    def __init__(self, action: str, allowed: list[str]):
        super().__init__(
            message=f"Unknown action '{action}'.",
            details={"action": action, "allowed": allowed},
        )


class MissingUserIdError(LastMoveException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "MISSING_USER_ID"

    def __init__(self, action: str):
        super().__init__(
            message=f"Action '{action}' requires a user_id.",
            details={"action": action},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def lastmove_exception_handler(request: Request, exc: LastMoveException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
