"""
Meal choice service
The resident-facing operations: the combined meal screen snapshot, the
effective status of one slot, and the daily and weekly writes.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.clock import Clock, SystemClock
from ..core.database import DatabaseManager
from ..core.exceptions import (
    EditWindowClosedError,
    InvalidWeekdayError,
    MealNotFoundError,
    ResidentNotFoundError,
    ValidationError,
)
from ..models.hostel import Hostel, Resident
from ..models.meal import Meal, ResolvedStatus, WEEKDAY_NAMES, override_key
from .audit_service import list_operations, record_operation
from .catalog_service import MealCatalogService
from .hostel_service import HostelService
from .override_service import DailyOverrideService
from .preference_service import WeeklyPreferenceService
from .resolution import (
    check_weekday,
    edit_deadline,
    is_editable,
    local_today,
    parse_iso_date,
    resolve_status,
    sanitize_weekly_preference,
)
from .snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)

CHOICE_ACTIONS = ("meal_daily_choice", "meal_weekly_choice")


def _check_flag(value, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be a boolean", details={field: value})
    return value


class MealChoiceService:

    def __init__(self, db: DatabaseManager, clock: Optional[Clock] = None,
                 cache: Optional[SnapshotCache] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.cache = cache if cache is not None else SnapshotCache(ttl_seconds=0)
        self.catalog = MealCatalogService(db)
        self.preferences = WeeklyPreferenceService(db)
        self.overrides = DailyOverrideService(db)
        self.hostels = HostelService(db)

    def _context(self, resident_id: str) -> Tuple[Optional[Resident], Optional[Hostel], ZoneInfo]:
        resident = self.hostels.find_resident(resident_id)
        hostel = None
        if resident is not None and resident.hostel_id is not None:
            hostel = self.hostels.get_hostel(resident.hostel_id)
        return resident, hostel, self.hostels.timezone_for(hostel)

    def _require_hostel(self, resident_id: str) -> Tuple[Hostel, ZoneInfo]:
        _, hostel, tz = self._context(resident_id)
        if hostel is None:
            raise ResidentNotFoundError("Resident is not assigned to a hostel",
                                        details={"resident_id": resident_id})
        return hostel, tz

    def _resident_meal(self, hostel: Hostel, meal_id: int) -> Meal:
        """Meal of the resident's own hostel; anything else does not exist for them"""
        meal = self.catalog.get_meal(meal_id)
        if meal is None or meal.hostel_id != hostel.id:
            raise MealNotFoundError(f"Meal not found: {meal_id}", details={"meal_id": meal_id})
        return meal

    # reads

    def get_meals_snapshot(self, resident_id: str) -> Dict[str, Any]:
        """
        Everything the resident's meal screen renders, for today and tomorrow.

        Weekly preferences come back sanitized against each meal's served
        weekdays; overrides and preferences for meals that no longer exist
        are dropped. A resident without a hostel gets an empty snapshot.
        Only the stored rows are cached; statuses are resolved against the
        clock on every call.
        """
        _, hostel, tz = self._context(resident_id)
        now = self.clock.now()
        today = local_today(now, tz)
        tomorrow = today + timedelta(days=1)

        if hostel is None:
            return self._empty_snapshot(resident_id, today, tomorrow)

        cache_scope = (hostel.id, today)
        stored = self.cache.get(resident_id, cache_scope)
        if stored is None:
            stored = self._load_stored_choices(resident_id, hostel, today, tomorrow)
            self.cache.put(resident_id, cache_scope, stored)

        meals = stored["meals"]
        preferences = stored["preferences"]
        overrides = stored["overrides"]

        statuses = {}
        for meal in meals:
            for day in (today, tomorrow):
                status = resolve_status(
                    meal, day, preferences.get(meal.meal_id), overrides.get((meal.meal_id, day)), now, tz
                )
                statuses[override_key(meal.meal_id, day)] = status.model_dump()

        return {
            "resident_id": resident_id,
            "hostel_id": hostel.id,
            "hostel_slug": hostel.hostel_slug,
            "today": today,
            "tomorrow": tomorrow,
            "meals": [meal.model_dump() for meal in meals],
            "weekly_preferences": {meal_id: pref.model_dump() for meal_id, pref in preferences.items()},
            "overrides": {override_key(meal_id, day): opted for (meal_id, day), opted in overrides.items()},
            "statuses": statuses,
            "menu": [row.model_dump() for row in stored["menu"]],
        }

    def _load_stored_choices(self, resident_id: str, hostel: Hostel,
                             today: date, tomorrow: date) -> Dict[str, Any]:
        meals = self.catalog.list_meals(hostel.id)
        meals_by_id = {meal.meal_id: meal for meal in meals}

        preferences = {
            meal_id: sanitize_weekly_preference(pref, meals_by_id[meal_id].served_weekdays)
            for meal_id, pref in self.preferences.list_for_resident(resident_id).items()
            if meal_id in meals_by_id
        }
        overrides = {
            (record.meal_id, record.meal_date): record.is_opted
            for record in self.overrides.list_for_resident(resident_id, [today, tomorrow])
            if record.meal_id in meals_by_id
        }
        return {
            "meals": meals,
            "preferences": preferences,
            "overrides": overrides,
            "menu": self.catalog.list_menu(list(meals_by_id)),
        }

    def _empty_snapshot(self, resident_id: str, today: date, tomorrow: date) -> Dict[str, Any]:
        return {
            "resident_id": resident_id,
            "hostel_id": None,
            "hostel_slug": None,
            "today": today,
            "tomorrow": tomorrow,
            "meals": [],
            "weekly_preferences": {},
            "overrides": {},
            "statuses": {},
            "menu": [],
        }

    def resolve(self, resident_id: str, meal_id: int, meal_date) -> ResolvedStatus:
        """Effective status of one slot; a meal the resident cannot see resolves as missing"""
        meal_date = parse_iso_date(meal_date)
        _, hostel, tz = self._context(resident_id)

        meal = self.catalog.get_meal(meal_id)
        if meal is not None and (hostel is None or meal.hostel_id != hostel.id):
            meal = None

        preference = override = None
        if meal is not None:
            preference = self.preferences.get(resident_id, meal_id)
            override = self.overrides.get(resident_id, meal_id, meal_date)
        return resolve_status(meal, meal_date, preference, override, self.clock.now(), tz)

    def history(self, resident_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent meal choices made by the resident"""
        return list_operations(self.db, actor_id=resident_id, actions=CHOICE_ACTIONS, limit=limit)

    # writes

    def set_daily_choice(self, resident_id: str, meal_id: int, meal_date, is_opted) -> Dict[str, Any]:
        """
        Override one date.

        The editability check is the last step before the upsert and runs
        inside the same transaction, so no other write can slip in between.
        Overrides on weekdays the meal is not served are accepted.
        """
        meal_date = parse_iso_date(meal_date)
        is_opted = _check_flag(is_opted, "is_opted")
        hostel, tz = self._require_hostel(resident_id)

        with self.db.transaction() as conn:
            meal = self._resident_meal(hostel, meal_id)
            if not is_editable(meal, meal_date, self.clock.now(), tz):
                raise EditWindowClosedError(
                    "Edit window closed for this meal",
                    details={
                        "meal_id": meal_id,
                        "date": meal_date.isoformat(),
                        "deadline": edit_deadline(meal, meal_date, tz).isoformat(),
                    }
                )
            record = self.overrides.set(resident_id, meal_id, meal_date, is_opted)
            record_operation(conn, "meal_daily_choice", resident_id, {
                "hostel_id": hostel.id,
                "meal_id": meal_id,
                "date": meal_date.isoformat(),
                "is_opted": is_opted,
            }, user_id=resident_id)

        self.cache.invalidate(resident_id)
        logger.info("daily choice %s for meal %s on %s", is_opted, meal_id, meal_date,
                    extra={"actor_id": resident_id, "hostel_id": hostel.id, "meal_id": meal_id})
        return record.model_dump()

    def set_weekly_choice(self, resident_id: str, meal_id: int, weekday, is_opted) -> Dict[str, Any]:
        """Set the recurring choice for one served weekday. Not deadline-gated."""
        weekday = check_weekday(weekday)
        is_opted = _check_flag(is_opted, "choice")
        hostel, _ = self._require_hostel(resident_id)

        with self.db.transaction() as conn:
            meal = self._resident_meal(hostel, meal_id)
            if not meal.is_served_on(weekday):
                raise InvalidWeekdayError(
                    f"{meal.name} is not served on {WEEKDAY_NAMES[weekday]}",
                    details={"meal_id": meal_id, "weekday": weekday, "served_weekdays": meal.served_weekdays}
                )
            preference = self.preferences.set(resident_id, meal_id, weekday, is_opted)
            record_operation(conn, "meal_weekly_choice", resident_id, {
                "hostel_id": hostel.id,
                "meal_id": meal_id,
                "weekday": weekday,
                "is_opted": is_opted,
            }, user_id=resident_id)

        self.cache.invalidate(resident_id)
        logger.info("weekly choice %s for meal %s on weekday %s", is_opted, meal_id, weekday,
                    extra={"actor_id": resident_id, "hostel_id": hostel.id, "meal_id": meal_id})
        return sanitize_weekly_preference(preference, meal.served_weekdays).model_dump()
