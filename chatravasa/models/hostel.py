"""
Hostel, resident and staff role records
"""

from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseEntity, TimestampMixin


class Hostel(BaseEntity, TimestampMixin):
    id: int
    hostel_slug: str
    name: str
    admin_user_id: str
    timezone: Optional[str] = None


class Resident(BaseEntity, TimestampMixin):
    id: str
    hostel_id: Optional[int] = None
    name: Optional[str] = None
    room: Optional[str] = None


class StaffRole(BaseEntity):
    id: int
    hostel_id: int
    title: str
    view_meals: bool = False
    manage_meals: bool = False


class HostelCreate(BaseModel):
    hostel_slug: str = Field(..., min_length=2, max_length=64, pattern=r"^[a-z0-9][a-z0-9-]*$")
    name: str = Field(..., min_length=1, max_length=200)
    timezone: Optional[str] = Field(None, description="IANA zone name, defaults to the configured zone")
