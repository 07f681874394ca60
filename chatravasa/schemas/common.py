from datetime import datetime
from typing import Generic, TypeVar, Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar('T')


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint"""
    success: bool = Field(description="Whether the request succeeded")
    data: Optional[T] = Field(None, description="Payload")
    message: Optional[str] = Field(None, description="Human readable message")


class ErrorResponse(BaseModel):
    """Failure envelope written by the global error handler"""
    success: bool = Field(False, description="Always false")
    error_code: str = Field(description="Machine readable error code")
    message: str = Field(description="Error message")
    details: dict = Field(default_factory=dict, description="Extra context")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": False,
            "error_code": "EDIT_WINDOW_CLOSED",
            "message": "Edit window closed for this meal",
            "details": {"meal_id": 3, "date": "2024-01-04"}
        }
    })


class CamelRequest(BaseModel):
    """Request body accepting camelCase or snake_case field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OperationLogEntry(BaseModel):
    log_id: int
    user_id: Optional[str] = None
    actor_id: Optional[str] = None
    action: str
    detail: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class OperationLogList(BaseModel):
    items: List[OperationLogEntry]
