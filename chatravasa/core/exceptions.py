"""
Application exceptions
Every caller-visible failure is a BaseApplicationError carrying an error_code
that the global error handler maps to an HTTP status.
"""

from typing import Any, Dict


class BaseApplicationError(Exception):
    """Base class for application errors"""

    default_code = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """Storage failure, propagated as an opaque infrastructure error"""
    default_code = "DATABASE_ERROR"


class ConcurrencyError(DatabaseError):
    """Transaction conflict reported by the database"""
    default_code = "CONCURRENCY_CONFLICT"


class AuthenticationError(BaseApplicationError):
    """Missing, expired or malformed credentials"""
    default_code = "AUTHENTICATION_REQUIRED"


class PermissionDeniedError(BaseApplicationError):
    """Authenticated actor lacks the capability for the hostel"""
    default_code = "PERMISSION_DENIED"


class ValidationError(BaseApplicationError):
    """Malformed date, out-of-range weekday, missing field"""
    default_code = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    default_code = "RESOURCE_NOT_FOUND"


class MealNotFoundError(NotFoundError):
    default_code = "MEAL_NOT_FOUND"


class HostelNotFoundError(NotFoundError):
    default_code = "HOSTEL_NOT_FOUND"


class ResidentNotFoundError(NotFoundError):
    default_code = "RESIDENT_NOT_FOUND"


class DuplicateResourceError(BaseApplicationError):
    default_code = "DUPLICATE_RESOURCE"


class BusinessRuleError(BaseApplicationError):
    """Base for meal-choice rule violations"""
    default_code = "BUSINESS_RULE_VIOLATION"


class InvalidWeekdayError(BusinessRuleError):
    """Weekly preference targets a weekday the meal is not served on"""
    default_code = "INVALID_WEEKDAY"


class EditWindowClosedError(BusinessRuleError):
    """Daily choice arrives at or after the meal's edit deadline"""
    default_code = "EDIT_WINDOW_CLOSED"
