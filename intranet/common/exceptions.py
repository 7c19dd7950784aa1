"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://intranet.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


# ── Leave engine errors ─────────────────────────────────────────────

class LeaveError(AppException):
    """Typed failure of a leave operation.

    ``code`` is the stable machine-readable kind (``leaveOverlap``,
    ``notPending`` …) that clients switch on.
    """

    code: str = "leaveError"

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: str,
        field: str = "leave",
    ) -> None:
        super().__init__(
            status_code=status_code,
            error_type=self.code,
            title=title,
            detail=detail,
            errors={field: [self.code]},
        )


class InvalidRangeError(LeaveError):
    """422 — end date before start date."""

    code = "invalidRange"

    def __init__(self) -> None:
        super().__init__(
            status_code=422,
            title="Invalid Date Range",
            detail="end_date must be on or after start_date.",
            field="end_date",
        )


class PastDateError(LeaveError):
    """422 — leave starting before today."""

    code = "pastDate"

    def __init__(self) -> None:
        super().__init__(
            status_code=422,
            title="Date In The Past",
            detail="Leave cannot start before today.",
            field="start_date",
        )


class LeaveOverlapError(LeaveError):
    """409 — range overlaps another pending or approved request."""

    code = "leaveOverlap"

    def __init__(self) -> None:
        super().__init__(
            status_code=409,
            title="Leave Overlap",
            detail=(
                "You already have a pending or approved leave request "
                "overlapping with these dates."
            ),
            field="dates",
        )


class NotPendingError(LeaveError):
    """409 — request already left the pending state."""

    code = "notPending"

    def __init__(self, status: str) -> None:
        super().__init__(
            status_code=409,
            title="Request Not Pending",
            detail=f"Leave request is already {status}.",
            field="status",
        )


class NotOwnerError(LeaveError):
    """403 — only the request's owner may do this."""

    code = "notOwner"

    def __init__(self) -> None:
        super().__init__(
            status_code=403,
            title="Not Request Owner",
            detail="You can only modify your own leave requests.",
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if isinstance(exc, LeaveError):
        body["code"] = exc.code
    if exc.errors:
        body["errors"] = exc.errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
