"""
Meal request/response schemas
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, StrictBool

from .common import CamelRequest
from ..models.meal import StatusSource


class DailyChoiceRequest(CamelRequest):
    """Body of POST /resident/meals/daily"""
    meal_id: int = Field(..., description="Meal id")
    date: str = Field(..., description="Calendar date YYYY-MM-DD")
    is_opted: StrictBool = Field(..., description="Opt in (true) or out (false) for that date")


class WeeklyChoiceRequest(CamelRequest):
    """Body of POST /resident/meals/weekly"""
    meal_id: int = Field(..., description="Meal id")
    weekday: int = Field(..., description="0 = Sunday ... 6 = Saturday")
    choice: StrictBool = Field(..., description="Default opt-in for that weekday")


class MealResponse(BaseModel):
    meal_id: int
    hostel_id: int
    name: str
    timing: str
    served_weekdays: List[int]
    edit_deadline_hours: float


class MenuRowResponse(BaseModel):
    id: int
    meal_id: int
    food: str
    weekdays: List[int]


class MealCatalogResponse(BaseModel):
    meals: List[MealResponse]
    menu: List[MenuRowResponse]


class WeeklyPreferenceResponse(BaseModel):
    resident_id: str
    meal_id: int
    opted_in_weekdays: List[int]
    opted_out_weekdays: List[int]
    updated_at: Optional[datetime] = None


class DailyOverrideResponse(BaseModel):
    resident_id: str
    meal_id: int
    meal_date: date
    is_opted: bool
    updated_at: Optional[datetime] = None


class StatusResponse(BaseModel):
    is_opted: bool
    is_editable: bool
    source: StatusSource
    deadline: Optional[datetime] = Field(None, description="Instant edits lock, absent for missing meals")


class MealsSnapshotResponse(BaseModel):
    """Resident meal screen; override and status keys are "mealId:YYYY-MM-DD" """
    resident_id: str
    hostel_id: Optional[int] = None
    hostel_slug: Optional[str] = None
    today: date
    tomorrow: date
    meals: List[MealResponse]
    weekly_preferences: Dict[int, WeeklyPreferenceResponse]
    overrides: Dict[str, bool]
    statuses: Dict[str, StatusResponse]
    menu: List[MenuRowResponse]


class WeekdayCount(BaseModel):
    opted_count: int
    meal_served: bool


class MealAnalyticsEntry(BaseModel):
    meal_id: int
    meal_name: str
    timing: str
    edit_deadline_hours: float
    served_weekdays: List[int]
    weekly: Dict[int, WeekdayCount]
    today_count: int
    tomorrow_count: int


class AnalyticsResponse(BaseModel):
    hostel_id: int
    total_residents: int
    today: date
    tomorrow: date
    today_weekday: int
    tomorrow_weekday: int
    per_meal: List[MealAnalyticsEntry]
