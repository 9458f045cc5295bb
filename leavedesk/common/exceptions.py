"""Exception base classes and RFC 7807 Problem Detail error handlers.

Every error a caller is expected to act on derives from ``AppException``.
Subclasses declare their HTTP status, problem ``type`` slug, and title as
class attributes and only build the human-readable ``detail`` (plus an
optional per-field ``errors`` map) at raise time.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://leavedesk.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    status_code: ClassVar[int] = 400
    error_type: ClassVar[str] = "bad-request"
    title: ClassVar[str] = "Bad Request"

    def __init__(
        self,
        detail: str,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.detail = detail
        self.errors = errors
        super().__init__(detail)

    @property
    def kind(self) -> str:
        """Stable machine-readable name of the error (the class name)."""
        return type(self).__name__

    def extra(self) -> dict[str, Any]:
        """Structured payload merged into the problem body."""
        return {}


class NotFoundException(AppException):
    """404 — entity not found."""

    status_code = 404
    error_type = "not-found"
    title = "Not Found"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' does not exist.")


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    status_code = 403
    error_type = "forbidden"
    title = "Forbidden"

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(detail)


class ConflictError(AppException):
    """409 — request conflicts with the current state of the resource."""

    status_code = 409
    error_type = "conflict"
    title = "Conflict"


# ── RFC 7807 builder ────────────────────────────────────────────────

def build_problem_detail(exc: AppException, instance: str) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": instance,
        "kind": exc.kind,
    }
    body.update(exc.extra())
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
        content=build_problem_detail(exc, str(request.url.path)),
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
            "type": f"{BASE_ERROR_URI}/request-validation",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "kind": "RequestValidation",
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
