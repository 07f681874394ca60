"""
Meal domain models
Weekdays are integers with Sunday = 0 through Saturday = 6.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseEntity, TimestampMixin

WEEKDAYS = tuple(range(7))
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TIMING_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
MAX_EDIT_DEADLINE_HOURS = 24 * 30


def normalize_weekdays(values: Iterable[int]) -> List[int]:
    """Deduplicate and sort, rejecting anything outside 0..6"""
    result = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int) or value not in WEEKDAYS:
            raise ValueError(f"weekday must be an integer 0-6, got {value!r}")
        result.add(value)
    return sorted(result)


def _check_served_weekdays(v: List[int]) -> List[int]:
    weekdays = normalize_weekdays(v)
    if not weekdays:
        raise ValueError("served_weekdays must not be empty")
    return weekdays


def _check_timing(v: str) -> str:
    if not TIMING_PATTERN.match(v):
        raise ValueError("timing must be HH:MM (24h)")
    return v


def _check_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name must not be blank")
    return v


class MenuItem(BaseModel):
    """Food served by a meal on one weekday"""
    weekday: int = Field(..., ge=0, le=6)
    food: str = Field(..., min_length=1, max_length=200)


class MealBase(BaseModel):
    name: str = Field(..., max_length=100, description="Display name")
    timing: str = Field(..., description="Serving time, local HH:MM")
    served_weekdays: List[int] = Field(..., description="Weekdays the meal is served on")
    edit_deadline_hours: float = Field(..., ge=0, description="Hours before timing when edits lock")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)

    @field_validator("timing")
    @classmethod
    def validate_timing(cls, v):
        return _check_timing(v)

    @field_validator("served_weekdays")
    @classmethod
    def validate_weekdays(cls, v):
        return _check_served_weekdays(v)


class MealCreate(MealBase):
    edit_deadline_hours: Optional[float] = Field(None, ge=0, le=MAX_EDIT_DEADLINE_HOURS, description="Defaults to the configured deadline")
    menu: List[MenuItem] = Field(default_factory=list)


class MealUpdate(BaseModel):
    """Partial update, absent fields are left untouched"""
    name: Optional[str] = Field(None, max_length=100)
    timing: Optional[str] = None
    served_weekdays: Optional[List[int]] = None
    edit_deadline_hours: Optional[float] = Field(None, ge=0, le=MAX_EDIT_DEADLINE_HOURS)
    menu: Optional[List[MenuItem]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return None if v is None else _check_name(v)

    @field_validator("timing")
    @classmethod
    def validate_timing(cls, v):
        return None if v is None else _check_timing(v)

    @field_validator("served_weekdays")
    @classmethod
    def validate_weekdays(cls, v):
        return None if v is None else _check_served_weekdays(v)


class Meal(MealBase, BaseEntity, TimestampMixin):
    meal_id: int
    hostel_id: int

    def is_served_on(self, weekday: int) -> bool:
        return weekday in self.served_weekdays


class WeeklyMenuRow(BaseEntity):
    """One stored menu row: a food and every weekday it is served"""
    id: int
    meal_id: int
    food: str
    weekdays: List[int]


class WeeklyPreference(BaseEntity):
    """
    Recurring per-weekday choice of one resident for one meal.

    A weekday in neither list means no preference was recorded for it.
    """
    resident_id: str
    meal_id: int
    opted_in_weekdays: List[int] = Field(default_factory=list)
    opted_out_weekdays: List[int] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @classmethod
    def empty(cls, resident_id: str, meal_id: int) -> "WeeklyPreference":
        return cls(resident_id=resident_id, meal_id=meal_id)


class DailyOverride(BaseEntity):
    resident_id: str
    meal_id: int
    meal_date: date
    is_opted: bool
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return override_key(self.meal_id, self.meal_date)


def override_key(meal_id: int, meal_date: date) -> str:
    """Snapshot key "mealId:YYYY-MM-DD" """
    return f"{meal_id}:{meal_date.isoformat()}"


class StatusSource(str, Enum):
    OVERRIDE = "override"
    WEEKLY = "weekly"
    DEFAULT = "default"
    MISSING_MEAL = "missing_meal"


class ResolvedStatus(BaseModel):
    """Effective opt-in for one (resident, meal, date), recomputed on every read"""
    is_opted: bool
    is_editable: bool
    source: StatusSource
    deadline: Optional[datetime] = None
