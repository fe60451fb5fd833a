"""Structured API errors shared by routes, services and validators.

Every error response leaves the service as
``{"error": {"code": ..., "message": ..., "details": ...}}``.
"""
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


UNAUTHORIZED = "UNAUTHORIZED"
VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"
NOT_FOUND = "NOT_FOUND"
FORBIDDEN = "FORBIDDEN"

ERROR_CODES = (UNAUTHORIZED, VALIDATION_ERROR, INTERNAL_ERROR, NOT_FOUND, FORBIDDEN)


class ApiError(Exception):
    """An error carrying the HTTP status and machine-readable code to respond with."""

    def __init__(self, code: str, message: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"ApiError(code={self.code!r}, message={self.message!r}, status_code={self.status_code})"


def create_error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}


def create_unauthorized_error(message: str = "Authentication required") -> ApiError:
    return ApiError(UNAUTHORIZED, message, 401)


def create_validation_error(message: str = "Invalid query parameters", details: Optional[Dict[str, Any]] = None) -> ApiError:
    return ApiError(VALIDATION_ERROR, message, 400, details)


def create_internal_error(message: str = "An internal server error occurred", details: Optional[Dict[str, Any]] = None) -> ApiError:
    return ApiError(INTERNAL_ERROR, message, 500, details)


def create_not_found_error(message: str = "Resource not found") -> ApiError:
    return ApiError(NOT_FOUND, message, 404)


def create_forbidden_error(message: str = "Access denied") -> ApiError:
    return ApiError(FORBIDDEN, message, 403)


def api_error_response(error: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=create_error_response(error.code, error.message, error.details),
    )
