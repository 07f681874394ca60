"""
Unified error handling
Maps application errors to HTTP statuses and a single response envelope:

    {"success": false, "error_code": ..., "message": ..., "details": {...}}

Unknown exceptions are logged with their traceback and recorded in the
logs table as system_error.
"""

import json
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .database import DatabaseManager
from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standard error response body"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )


class ErrorHandler:
    """Global error handler"""

    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 400,
        "AUTHENTICATION_REQUIRED": 401,
        "PERMISSION_DENIED": 403,
        "RESOURCE_NOT_FOUND": 404,
        "DUPLICATE_RESOURCE": 409,
        "BUSINESS_RULE_VIOLATION": 422,
        "DATABASE_ERROR": 500,
        "CONCURRENCY_CONFLICT": 409,
        "INTERNAL_ERROR": 500,

        # meals
        "MEAL_NOT_FOUND": 404,
        "INVALID_WEEKDAY": 400,
        "EDIT_WINDOW_CLOSED": 409,

        # hostels
        "HOSTEL_NOT_FOUND": 404,
        "RESIDENT_NOT_FOUND": 404,
    }

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db

    def handle_application_error(self, error: BaseApplicationError) -> ErrorResponse:
        http_status = self.ERROR_CODE_STATUS_MAP.get(error.error_code, 400)
        if http_status >= 500:
            logger.error("%s: %s", error.error_code, error.message)
        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    def handle_http_exception(self, error: HTTPException) -> ErrorResponse:
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    def handle_validation_error(self, error: RequestValidationError) -> ErrorResponse:
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"validation_errors": json.loads(json.dumps(error.errors(), default=str))},
            http_status=422
        )

    def handle_unknown_error(self, error: Exception) -> ErrorResponse:
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exception(type(error), error, error.__traceback__),
        }
        logger.error("unhandled %s: %s", type(error).__name__, error, exc_info=error)
        self._log_system_error(error_details)

        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="Internal server error",
            details={"error_type": type(error).__name__},
            http_status=500
        )

    def _log_system_error(self, error_details: Dict[str, Any]):
        if self.db is None:
            return
        try:
            self.db.execute_query(
                "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
                [None, None, "system_error", json.dumps(error_details)]
            )
        except BaseApplicationError:
            logger.exception("failed to record system_error in logs table")


def register_error_handlers(app, db: Optional[DatabaseManager] = None):
    handler = ErrorHandler(db)

    async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
        return handler.handle_application_error(exc).to_json_response()

    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return handler.handle_http_exception(exc).to_json_response()

    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return handler.handle_validation_error(exc).to_json_response()

    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return handler.handle_unknown_error(exc).to_json_response()

    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def create_success_response(data: Any = None, message: str = "ok") -> Dict[str, Any]:
    response = {
        "success": True,
        "message": message
    }
    if data is not None:
        response["data"] = data
    return response
