"""
Vibe API Response Utilities
Standardized response format and error handling
"""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, List
from datetime import datetime, timezone

from .database import is_valid_id
from .errors import DomainError, EmptyInput, InvalidArgument
from .logging_config import api_logger


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None, meta: Dict = None) -> Dict:
    """Create success response"""
    response = {
        "ok": True,
        "timestamp": _now(),
    }

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    if meta:
        response["meta"] = meta

    return response


def created(data: Any, message: str = "Created successfully") -> Dict:
    """201 Created response"""
    return success(data, message)


def deleted(message: str = "Deleted successfully") -> Dict:
    """200 Deleted response"""
    return success(message=message)


def paginated(items: List, total: int, page: int = 1, per_page: int = 20) -> Dict:
    """Paginated list response"""
    return {
        "ok": True,
        "data": items,
        "pagination": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": (total + per_page - 1) // per_page,
            "has_next": page * per_page < total,
            "has_prev": page > 1,
        },
        "timestamp": _now(),
    }


# ============================================================
# EXCEPTION HANDLER
# ============================================================

def _error_body(message: str, error_code: str, details: Dict = None) -> Dict:
    body = {
        "ok": False,
        "error": message,
        "error_code": error_code,
        "timestamp": _now(),
    }
    if details:
        body["details"] = details
    return body


async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""

    if isinstance(exc, DomainError):
        api_logger.warning(
            f"API Error: {exc.message}",
            status_code=exc.status_code,
            error_code=exc.kind,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.kind, exc.details),
        )

    if isinstance(exc, HTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail, f"HTTP_{exc.status_code}"),
            headers=getattr(exc, "headers", None),
        )

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


# ============================================================
# VALIDATION HELPERS
# ============================================================

def require(value: Any, field_name: str):
    """Require a field to be present"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise EmptyInput(f"{field_name} is required", {"field": field_name})
    return value


def require_valid_id(id: str, resource: str = "Resource") -> str:
    """Require a well-formed 24-hex-char entity id"""
    if not is_valid_id(id):
        raise InvalidArgument(f"Invalid {resource} ID", {"id": id})
    return id
