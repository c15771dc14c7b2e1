"""
RFC 7807 Problem Details exception handling.

Every domain failure is raised as an ERPException subclass and rendered as an
``application/problem+json`` response:

- NotFoundError (404): entity missing or soft-deleted
- ForbiddenError (403): authenticated but the policy denies the operation
- UnauthorizedError (401): missing or invalid principal token
- ValidationError (422): malformed or missing input, with field-level errors
- ConflictError (409): the operation conflicts with the current state

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://erp.shiprepair.local/problems"


def _get_trace_id() -> str:
    """Get trace ID from the request context or generate a new one."""
    from shiprepair_erp.middleware.correlation import get_request_id

    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return str(uuid.uuid4())[:12]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ErrorCode(str, Enum):
    """Standardized error codes for the ERP API."""

    # Authentication & Authorization
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VAL_001"

    # Resource
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Server
    INTERNAL_ERROR = "SRV_001"


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Unique identifier for tracing in logs
        errors: List of field-level validation errors (for 422)
    """

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": f"{PROBLEM_TYPE_BASE}/res-003",
                "title": "Conflict",
                "status": 409,
                "detail": "Cost line is locked",
                "instance": "/api/v2/cost-lines/7b1c",
                "code": "RES_003",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456"
            }
        }
    }


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.value.lower().replace('_', '-')}"


class ERPException(HTTPException):
    """
    Base exception for the ERP API with RFC 7807 support.

    Usage:
        raise ERPException(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail="Work order not found",
        )
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.errors = errors
        self.trace_id = _get_trace_id()
        self.timestamp = _utc_timestamp()

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title based on status code."""
        titles = {
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            422: "Validation Error",
            500: "Internal Server Error",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        """Convert to RFC 7807 ProblemDetail."""
        return ProblemDetail(
            type=_problem_type(self.code),
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=self.instance or instance,
            code=self.code.value,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            errors=self.errors,
        )


# Convenience exception classes

class NotFoundError(ERPException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id is not None:
            detail = f"{resource} with ID {resource_id} was not found"
        super().__init__(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail=detail,
        )


class ValidationError(ERPException):
    """Validation error (422)."""

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
    ):
        if errors is None and field is not None:
            errors = [{"field": field, "message": detail, "type": "value_error"}]
        super().__init__(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail=detail,
            errors=errors,
        )


class UnauthorizedError(ERPException):
    """Authentication required (401)."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=401,
            code=ErrorCode.UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(ERPException):
    """Permission denied (403)."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(
            status_code=403,
            code=ErrorCode.FORBIDDEN,
            detail=detail,
        )


class ConflictError(ERPException):
    """Operation conflicts with the current state (409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=409,
            code=ErrorCode.CONFLICT,
            detail=detail,
        )


# Exception handlers for FastAPI

def create_problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response."""
    problem = ProblemDetail(
        type=_problem_type(code),
        title=ERPException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        timestamp=_utc_timestamp(),
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )

    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def erp_exception_handler(request: Request, exc: ERPException) -> JSONResponse:
    """Handle ERPException with RFC 7807 response."""
    logger.warning(
        f"ERPException: {exc.code.value} - {exc.detail}",
        extra={
            "trace_id": exc.trace_id,
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem_detail(instance=str(request.url.path)).model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Handle standard HTTPException with RFC 7807 response."""
    code_map = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
    }
    code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)

    return create_problem_response(
        status_code=exc.status_code,
        code=code,
        detail=str(exc.detail),
        request=request,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return create_problem_response(
        status_code=422,
        code=ErrorCode.VALIDATION_ERROR,
        detail="Request validation failed",
        request=request,
        errors=errors,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with RFC 7807 response."""
    trace_id = str(uuid.uuid4())[:12]

    logger.error(
        f"Unhandled exception: {exc}",
        extra={"trace_id": trace_id, "path": request.url.path},
    )
    logger.error(traceback.format_exc())

    # Don't expose internal details in production
    from shiprepair_erp.config import settings
    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

    return create_problem_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR,
        detail=detail,
        request=request,
        trace_id=trace_id,
    )


def register_exception_handlers(app) -> None:
    """Attach the problem-details handlers to a FastAPI app."""
    app.add_exception_handler(ERPException, erp_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
