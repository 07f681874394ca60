"""
Base models
Common model base classes and fields
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TimestampMixin(BaseModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """Base for records loaded from the database"""

    model_config = {"from_attributes": True, "use_enum_values": True}
