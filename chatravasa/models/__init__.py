"""
Domain models
"""

from .hostel import Hostel, HostelCreate, Resident, StaffRole
from .meal import (
    DailyOverride,
    Meal,
    MealCreate,
    MealUpdate,
    MenuItem,
    ResolvedStatus,
    StatusSource,
    WeeklyMenuRow,
    WeeklyPreference,
    override_key,
)

__all__ = [
    "DailyOverride",
    "Hostel",
    "HostelCreate",
    "Meal",
    "MealCreate",
    "MealUpdate",
    "MenuItem",
    "Resident",
    "ResolvedStatus",
    "StaffRole",
    "StatusSource",
    "WeeklyMenuRow",
    "WeeklyPreference",
    "override_key",
]
