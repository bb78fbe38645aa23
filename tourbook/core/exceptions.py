"""Error taxonomy following RFC 9457 Problem Details for HTTP APIs."""

import logging
from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    Every error raised by the remote client, the repositories and the
    wire normalization layer is one of these, so the coordinator can turn
    any of them into a failure result and the HTTP surface can render
    them without inspecting concrete types.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    code = "ERROR"

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self._message = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        # Create the problem details object
        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "code": self.code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        # Add extensions
        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    @property
    def message(self) -> str:
        """Human-readable message suitable for an inline error banner."""
        return self._message or self.title

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.status_code}): {self.message}"


class NetworkError(ProblemDetailsException):
    """The remote store could not be reached (connection failure or timeout)."""

    code = "NETWORK_ERROR"

    def __init__(
        self,
        detail: str = "The remote service could not be reached",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=503,
            title="Service Unreachable",
            detail=detail,
            type_uri="https://example.com/problems/network-error",
            instance=instance,
            extensions={"retryable": True},
        )


class AuthError(ProblemDetailsException):
    """The caller is unauthenticated or not allowed to perform the operation."""

    code = "AUTH_ERROR"

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        status_code: int = 401,
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=status_code,
            title="Authentication Required" if status_code == 401 else "Access Forbidden",
            detail=detail,
            type_uri="https://example.com/problems/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"} if status_code == 401 else None,
        )


class ValidationError(ProblemDetailsException):
    """Input or a remote payload was rejected as malformed."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Any] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://example.com/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    code = "NOT_FOUND"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://example.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors, e.g. a rejected status transition."""

    code = "CONFLICT"

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri="https://example.com/problems/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


class DuplicateReviewError(ConflictError):
    """The current user has already reviewed this tour."""

    code = "DUPLICATE_REVIEW"

    def __init__(self, tour_id: Optional[str] = None, detail: str = "You have already reviewed this tour"):
        super().__init__(
            detail=detail,
            conflicting_resource={"tour_id": tour_id} if tour_id else None,
        )
        self.problem_details.update({
            "type": "https://example.com/problems/duplicate-review",
            "retryable": False,
        })


class RemoteServiceError(ProblemDetailsException):
    """The remote store answered with a server-side failure."""

    code = "REMOTE_SERVICE_ERROR"

    def __init__(
        self,
        upstream_status: int,
        detail: str = "The remote service failed to process the request",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=502,
            title="Bad Gateway",
            detail=detail,
            type_uri="https://example.com/problems/remote-service-error",
            instance=instance,
            extensions={"upstream_status": upstream_status, "retryable": True},
        )


class InternalServerError(ProblemDetailsException):
    """Exception for internal server errors."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str = "An unexpected error occurred while processing the request",
        error_id: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not error_id:
            error_id = str(uuid.uuid4())

        extensions = {
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        super().__init__(
            status_code=500,
            title="Internal Server Error",
            detail=detail,
            type_uri="https://example.com/problems/internal-server-error",
            instance=instance,
            extensions=extensions,
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error = InternalServerError(instance=str(request.url))
    logger.error(
        "Unhandled exception",
        extra={"error_id": error.extensions["error_id"], "path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=error.status_code,
        content=error.problem_details,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request validation failures as Problem Details with violations.

    Args:
        request: FastAPI request object
        exc: Request validation error raised by FastAPI

    Returns:
        JSONResponse: Problem Details formatted response
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "type": "https://example.com/problems/validation-error",
            "title": "Validation Error",
            "status": 422,
            "code": ValidationError.code,
            "detail": "The request data failed validation",
            "instance": str(request.url),
            "violations": violations,
        },
    )
