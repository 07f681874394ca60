"""
Hostel administration request/response schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HostelResponse(BaseModel):
    id: int
    hostel_slug: str
    name: str
    admin_user_id: str
    timezone: Optional[str] = None
    created_at: Optional[datetime] = None


class ResidentCreateRequest(BaseModel):
    resident_id: str = Field(..., min_length=1, description="User id of the resident")
    name: Optional[str] = Field(None, max_length=200)
    room: Optional[str] = Field(None, max_length=50)


class ResidentResponse(BaseModel):
    id: str
    hostel_id: Optional[int] = None
    name: Optional[str] = None
    room: Optional[str] = None


class StaffRoleCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    view_meals: bool = False
    manage_meals: bool = False


class StaffRoleResponse(BaseModel):
    id: int
    hostel_id: int
    title: str
    view_meals: bool
    manage_meals: bool


class StaffAssignRequest(BaseModel):
    staff_member_id: str = Field(..., min_length=1)
    role_id: int
