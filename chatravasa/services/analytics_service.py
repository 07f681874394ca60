"""
Meal analytics
Headcounts for the admin and cook dashboards, computed with the same
resolution rules residents see.

One pass reads the clock once, fixes today and tomorrow, and loads every
resident's preferences and overrides for the hostel's meals in bulk, so all
residents are counted against the same reference dates.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ..core.clock import Clock, SystemClock
from ..core.database import DatabaseManager
from ..models.meal import WEEKDAYS, Meal, WeeklyPreference
from .catalog_service import MealCatalogService
from .hostel_service import HostelService
from .override_service import DailyOverrideService
from .preference_service import WeeklyPreferenceService
from .resolution import (
    effective_opt_in,
    local_today,
    parse_iso_date,
    sanitize_weekly_preference,
    weekday_of,
)

logger = logging.getLogger(__name__)


class MealAnalyticsService:

    def __init__(self, db: DatabaseManager, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.catalog = MealCatalogService(db)
        self.preferences = WeeklyPreferenceService(db)
        self.overrides = DailyOverrideService(db)
        self.hostels = HostelService(db)

    def get_analytics(self, hostel_id: int, on_date=None) -> Dict[str, Any]:
        """
        Per-meal opted-in counts.

        Args:
            hostel_id: hostel to aggregate
            on_date: reference "today" (date or YYYY-MM-DD); defaults to the
                hostel-local calendar date

        Returns:
            total_residents, today, tomorrow and one per_meal entry holding the
            weekly grid (weekday -> opted_count, meal_served) plus
            today_count and tomorrow_count
        """
        hostel = self.hostels.get_hostel(hostel_id)
        if on_date is not None:
            today = parse_iso_date(on_date)
        else:
            today = local_today(self.clock.now(), self.hostels.timezone_for(hostel))
        tomorrow = today + timedelta(days=1)

        meals = self.catalog.list_meals(hostel_id)
        resident_ids = self.hostels.list_resident_ids(hostel_id)
        meal_ids = [meal.meal_id for meal in meals]

        preferences = self.preferences.list_for_meals(meal_ids, resident_ids)
        overrides = self.overrides.list_for_dates(meal_ids, [today, tomorrow])

        per_meal = []
        for meal in meals:
            sanitized = {
                resident_id: sanitize_weekly_preference(preferences[(resident_id, meal.meal_id)], meal.served_weekdays)
                for resident_id in resident_ids
                if (resident_id, meal.meal_id) in preferences
            }
            per_meal.append({
                "meal_id": meal.meal_id,
                "meal_name": meal.name,
                "timing": meal.timing,
                "edit_deadline_hours": meal.edit_deadline_hours,
                "served_weekdays": meal.served_weekdays,
                "weekly": self._weekly_grid(meal, resident_ids, sanitized),
                "today_count": self._count_for_date(meal, today, resident_ids, sanitized, overrides),
                "tomorrow_count": self._count_for_date(meal, tomorrow, resident_ids, sanitized, overrides),
            })

        logger.debug("analytics for hostel %s on %s: %d meals, %d residents",
                     hostel_id, today, len(meals), len(resident_ids), extra={"hostel_id": hostel_id})
        return {
            "hostel_id": hostel_id,
            "total_residents": len(resident_ids),
            "today": today,
            "tomorrow": tomorrow,
            "today_weekday": weekday_of(today),
            "tomorrow_weekday": weekday_of(tomorrow),
            "per_meal": per_meal,
        }

    def _weekly_grid(self, meal: Meal, resident_ids: List[str],
                     sanitized: Dict[str, WeeklyPreference]) -> Dict[int, Dict[str, Any]]:
        """Recurring headcount per weekday, ignoring date overrides"""
        grid = {}
        for weekday in WEEKDAYS:
            served = meal.is_served_on(weekday)
            count = 0
            if served:
                for resident_id in resident_ids:
                    preference = sanitized.get(resident_id)
                    if preference is None or weekday not in preference.opted_out_weekdays:
                        count += 1
            grid[weekday] = {"opted_count": count, "meal_served": served}
        return grid

    def _count_for_date(self, meal: Meal, day: date, resident_ids: List[str],
                        sanitized: Dict[str, WeeklyPreference],
                        overrides: Dict[Tuple[str, int, date], bool]) -> int:
        """
        Full resolution for one date. On a weekday the meal is not served only
        explicit overrides count.
        """
        served = meal.is_served_on(weekday_of(day))
        count = 0
        for resident_id in resident_ids:
            override = overrides.get((resident_id, meal.meal_id, day))
            if override is None and not served:
                continue
            is_opted, _ = effective_opt_in(day, sanitized.get(resident_id), override)
            if is_opted:
                count += 1
        return count
