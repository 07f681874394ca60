"""
Meal opt-in resolution
Pure functions, no storage access: callers load the meal, the weekly
preference and the override, then ask here for the effective status.

Precedence for one (resident, meal, date):
    1. a daily override for exactly that date, even on a non-served weekday
    2. the sanitized weekly preference for the date's weekday
    3. opted in

A missing meal resolves to opted in and locked. Editability depends only on
the meal and the date: a slot is editable while now < serving time minus
edit_deadline_hours, evaluated in the hostel's timezone.
"""

from datetime import MAXYEAR, date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.exceptions import ValidationError
from ..models.meal import WEEKDAYS, Meal, ResolvedStatus, StatusSource, WeeklyPreference

EARLIEST_DEADLINE = datetime.min.replace(tzinfo=timezone.utc)
LATEST_DEADLINE = datetime.max.replace(tzinfo=timezone.utc)


def parse_iso_date(value) -> date:
    """Accept a date or a strict YYYY-MM-DD string"""
    if isinstance(value, datetime):
        raise ValidationError("Expected a calendar date, got a datetime", details={"date": str(value)})
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) != 10:
        raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD", details={"date": str(value)})
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD", details={"date": value})


def check_weekday(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in WEEKDAYS:
        raise ValidationError(f"Weekday must be an integer 0-6, got {value!r}", details={"weekday": value})
    return value


def weekday_of(meal_date: date) -> int:
    """Calendar weekday of the date itself, Sunday = 0"""
    return (meal_date.weekday() + 1) % 7


def parse_timing(timing: str) -> time:
    hours, minutes = timing.split(":")
    return time(int(hours), int(minutes))


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def edit_deadline(meal: Meal, meal_date: date, tz: ZoneInfo) -> datetime:
    """
    Instant after which choices for this meal on this date are locked (UTC).

    Deadlines outside the datetime range clamp to its ends: dates at the far
    past edge are locked, dates at the far future edge stay editable.
    """
    serving = datetime.combine(meal_date, parse_timing(meal.timing), tzinfo=tz)
    try:
        serving = serving.astimezone(timezone.utc)
    except OverflowError:
        return EARLIEST_DEADLINE if meal_date.year < MAXYEAR else LATEST_DEADLINE
    # subtract in UTC so a DST change between deadline and serving is counted
    try:
        return serving - timedelta(hours=meal.edit_deadline_hours)
    except OverflowError:
        return EARLIEST_DEADLINE


def is_editable(meal: Optional[Meal], meal_date: date, now: datetime, tz: ZoneInfo) -> bool:
    if meal is None:
        return False
    return now < edit_deadline(meal, meal_date, tz)


def sanitize_weekly_preference(preference: WeeklyPreference, served_weekdays: Iterable[int]) -> WeeklyPreference:
    """
    Read-time view of a weekly preference restricted to the served weekdays.

    A weekday present in both stored sets keeps its opt-in. Returns a new
    object; storage is never touched.
    """
    served = set(served_weekdays)
    opted_in = set(preference.opted_in_weekdays) & served
    opted_out = (set(preference.opted_out_weekdays) & served) - opted_in
    return preference.model_copy(update={
        "opted_in_weekdays": sorted(opted_in),
        "opted_out_weekdays": sorted(opted_out),
    })


def weekly_choice(preference: Optional[WeeklyPreference], weekday: int) -> Optional[bool]:
    """True/False when the weekday has a recorded preference, None otherwise"""
    if preference is None:
        return None
    if weekday in preference.opted_in_weekdays:
        return True
    if weekday in preference.opted_out_weekdays:
        return False
    return None


def effective_opt_in(
    meal_date: date,
    preference: Optional[WeeklyPreference],
    override: Optional[bool],
) -> Tuple[bool, StatusSource]:
    if override is not None:
        return override, StatusSource.OVERRIDE
    choice = weekly_choice(preference, weekday_of(meal_date))
    if choice is not None:
        return choice, StatusSource.WEEKLY
    return True, StatusSource.DEFAULT


def resolve_status(
    meal: Optional[Meal],
    meal_date: date,
    preference: Optional[WeeklyPreference],
    override: Optional[bool],
    now: datetime,
    tz: ZoneInfo,
) -> ResolvedStatus:
    if meal is None:
        return ResolvedStatus(is_opted=True, is_editable=False, source=StatusSource.MISSING_MEAL)

    if preference is not None:
        preference = sanitize_weekly_preference(preference, meal.served_weekdays)
    is_opted, source = effective_opt_in(meal_date, preference, override)
    deadline = edit_deadline(meal, meal_date, tz)
    return ResolvedStatus(
        is_opted=is_opted,
        is_editable=now < deadline,
        source=source,
        deadline=deadline,
    )
