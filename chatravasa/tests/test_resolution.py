"""
Resolution engine and sanitizer tests
Pure functions, no database.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from ..core.exceptions import ValidationError
from ..models.meal import Meal, StatusSource, WeeklyPreference
from ..services.resolution import (
    EARLIEST_DEADLINE,
    LATEST_DEADLINE,
    check_weekday,
    edit_deadline,
    effective_opt_in,
    is_editable,
    local_today,
    parse_iso_date,
    resolve_status,
    sanitize_weekly_preference,
    weekday_of,
)

KOLKATA = ZoneInfo("Asia/Kolkata")
NEW_YORK = ZoneInfo("America/New_York")


def make_meal(**overrides) -> Meal:
    fields = dict(
        meal_id=1,
        hostel_id=1,
        name="Breakfast",
        timing="08:00",
        served_weekdays=[1, 2, 3, 4, 5],
        edit_deadline_hours=12,
    )
    fields.update(overrides)
    return Meal(**fields)


def make_pref(opted_in=(), opted_out=()) -> WeeklyPreference:
    return WeeklyPreference(
        resident_id="r1", meal_id=1,
        opted_in_weekdays=list(opted_in), opted_out_weekdays=list(opted_out),
    )


class TestDates:

    def test_weekday_sunday_is_zero(self):
        assert weekday_of(date(2024, 1, 7)) == 0
        assert weekday_of(date(2024, 1, 6)) == 6
        assert weekday_of(date(2024, 1, 3)) == 3

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-01-17") == date(2024, 1, 17)
        assert parse_iso_date(date(2024, 1, 17)) == date(2024, 1, 17)

    @pytest.mark.parametrize("value", ["2024-1-17", "17-01-2024", "2024-02-30", "", None, 20240117])
    def test_parse_iso_date_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_iso_date(value)

    def test_parse_iso_date_rejects_datetime(self):
        with pytest.raises(ValidationError):
            parse_iso_date(datetime(2024, 1, 17, 8, 0))

    @pytest.mark.parametrize("value", [-1, 7, True, "3", 2.0])
    def test_check_weekday_rejects_out_of_range(self, value):
        with pytest.raises(ValidationError):
            check_weekday(value)

    def test_local_today_uses_hostel_zone(self):
        # 20:00 UTC is already the next day in Kolkata, still the same day in New York
        now = datetime(2024, 1, 3, 20, 0, tzinfo=timezone.utc)
        assert local_today(now, KOLKATA) == date(2024, 1, 4)
        assert local_today(now, NEW_YORK) == date(2024, 1, 3)


class TestPrecedence:

    def test_override_wins_over_contradicting_weekly(self):
        # Wednesday 2024-01-17, weekly says out, override says in
        pref = make_pref(opted_out=[3])
        assert effective_opt_in(date(2024, 1, 17), pref, True) == (True, StatusSource.OVERRIDE)
        pref = make_pref(opted_in=[3])
        assert effective_opt_in(date(2024, 1, 17), pref, False) == (False, StatusSource.OVERRIDE)

    def test_override_applies_on_non_served_weekday(self):
        meal = make_meal()
        sunday = date(2024, 1, 7)
        status = resolve_status(meal, sunday, None, False, datetime(2024, 1, 1, tzinfo=timezone.utc), KOLKATA)
        assert status.is_opted is False
        assert status.source == StatusSource.OVERRIDE

    def test_weekly_preference_used_without_override(self):
        pref = make_pref(opted_in=[1], opted_out=[3])
        assert effective_opt_in(date(2024, 1, 15), pref, None) == (True, StatusSource.WEEKLY)
        assert effective_opt_in(date(2024, 1, 17), pref, None) == (False, StatusSource.WEEKLY)

    def test_default_opted_in(self):
        assert effective_opt_in(date(2024, 1, 17), None, None) == (True, StatusSource.DEFAULT)
        assert effective_opt_in(date(2024, 1, 17), make_pref(opted_out=[1]), None) == (True, StatusSource.DEFAULT)

    def test_wednesday_without_data_resolves_opted_in(self):
        meal = make_meal()
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        status = resolve_status(meal, date(2024, 1, 3), None, None, now, KOLKATA)
        assert status.is_opted is True

    def test_resolution_ignores_preferences_for_unserved_weekdays(self):
        # stored opt-out on Sunday, meal no longer served Sunday, no override
        meal = make_meal()
        status = resolve_status(meal, date(2024, 1, 7), make_pref(opted_out=[0]), None,
                                datetime(2024, 1, 1, tzinfo=timezone.utc), KOLKATA)
        assert status.is_opted is True
        assert status.source == StatusSource.DEFAULT


class TestMissingMeal:

    def test_missing_meal_fails_open_and_locked(self):
        status = resolve_status(None, date(2024, 1, 17), make_pref(opted_out=[3]), False,
                                datetime(2024, 1, 1, tzinfo=timezone.utc), KOLKATA)
        assert status.is_opted is True
        assert status.is_editable is False
        assert status.source == StatusSource.MISSING_MEAL
        assert status.deadline is None

    def test_missing_meal_never_editable(self):
        assert is_editable(None, date(2030, 1, 1), datetime(2024, 1, 1, tzinfo=timezone.utc), KOLKATA) is False


class TestEditability:

    def test_deadline_boundary_is_strict(self):
        meal = make_meal()
        slot = date(2024, 1, 4)
        just_before = datetime(2024, 1, 3, 19, 59, 59, tzinfo=KOLKATA)
        at_deadline = datetime(2024, 1, 3, 20, 0, 0, tzinfo=KOLKATA)
        assert is_editable(meal, slot, just_before, KOLKATA) is True
        assert is_editable(meal, slot, at_deadline, KOLKATA) is False
        assert is_editable(meal, slot, at_deadline + timedelta(microseconds=1), KOLKATA) is False

    def test_deadline_is_single_threshold(self):
        meal = make_meal(edit_deadline_hours=2.5)
        slot = date(2024, 1, 4)
        deadline = edit_deadline(meal, slot, KOLKATA)
        assert deadline == datetime(2024, 1, 4, 5, 30, tzinfo=KOLKATA)
        instants = [deadline + timedelta(minutes=m) for m in range(-180, 181, 15)]
        flags = [is_editable(meal, slot, instant, KOLKATA) for instant in instants]
        assert flags == [instant < deadline for instant in instants]
        assert flags == sorted(flags, reverse=True)

    def test_zero_deadline_locks_at_serving_time(self):
        meal = make_meal(edit_deadline_hours=0)
        slot = date(2024, 1, 4)
        assert is_editable(meal, slot, datetime(2024, 1, 4, 7, 59, tzinfo=KOLKATA), KOLKATA)
        assert not is_editable(meal, slot, datetime(2024, 1, 4, 8, 0, tzinfo=KOLKATA), KOLKATA)

    def test_editability_independent_of_resident_state(self):
        meal = make_meal()
        now = datetime(2024, 1, 3, 19, 0, tzinfo=KOLKATA)
        slot = date(2024, 1, 4)
        plain = resolve_status(meal, slot, None, None, now, KOLKATA)
        overridden = resolve_status(meal, slot, make_pref(opted_out=[4]), False, now, KOLKATA)
        assert plain.is_editable == overridden.is_editable is True

    def test_deadline_counts_real_hours_across_dst(self):
        # 2024-03-10 is the US spring-forward day: 08:00 EDT minus 12h is 19:00 EST the day before
        meal = make_meal(served_weekdays=[0, 1, 2, 3, 4, 5, 6])
        deadline = edit_deadline(meal, date(2024, 3, 10), NEW_YORK)
        assert deadline == datetime(2024, 3, 9, 19, 0, tzinfo=NEW_YORK)

    def test_far_past_date_is_locked(self):
        meal = make_meal(served_weekdays=[0, 1, 2, 3, 4, 5, 6])
        now = datetime(2024, 1, 3, 10, 0, tzinfo=KOLKATA)
        assert edit_deadline(meal, date(1, 1, 1), KOLKATA) == EARLIEST_DEADLINE
        status = resolve_status(meal, date(1, 1, 1), None, None, now, KOLKATA)
        assert status.is_opted is True
        assert status.is_editable is False

    def test_far_future_date_stays_editable(self):
        meal = make_meal(timing="23:30", served_weekdays=[0, 1, 2, 3, 4, 5, 6])
        los_angeles = ZoneInfo("America/Los_Angeles")
        now = datetime(2024, 1, 3, 10, 0, tzinfo=los_angeles)
        assert edit_deadline(meal, date(9999, 12, 31), los_angeles) == LATEST_DEADLINE
        assert is_editable(meal, date(9999, 12, 31), now, los_angeles) is True

    def test_stored_deadline_beyond_range_locks(self):
        meal = make_meal(edit_deadline_hours=1e8)
        now = datetime(2024, 1, 3, 10, 0, tzinfo=KOLKATA)
        assert edit_deadline(meal, date(2024, 1, 4), KOLKATA) == EARLIEST_DEADLINE
        assert resolve_status(meal, date(2024, 1, 4), None, None, now, KOLKATA).is_editable is False


class TestSanitizer:

    def test_filters_to_served_weekdays(self):
        pref = make_pref(opted_in=[0, 1, 6], opted_out=[2, 5])
        clean = sanitize_weekly_preference(pref, [1, 2, 3])
        assert clean.opted_in_weekdays == [1]
        assert clean.opted_out_weekdays == [2]

    def test_schedule_change_hides_weekend_preferences(self):
        pref = make_pref(opted_in=[0, 6])
        clean = sanitize_weekly_preference(pref, [1, 2, 3, 4, 5])
        assert clean.opted_in_weekdays == []
        # the stored value is untouched
        assert pref.opted_in_weekdays == [0, 6]

    def test_disjoint_and_subset(self):
        pref = make_pref(opted_in=[1, 2, 3], opted_out=[2, 3, 4, 0])
        served = [0, 1, 2, 3]
        clean = sanitize_weekly_preference(pref, served)
        assert not set(clean.opted_in_weekdays) & set(clean.opted_out_weekdays)
        assert set(clean.opted_in_weekdays) <= set(served)
        assert set(clean.opted_out_weekdays) <= set(served)
        # a weekday stored in both sets keeps its opt-in
        assert clean.opted_in_weekdays == [1, 2, 3]
        assert clean.opted_out_weekdays == [0]

    def test_idempotent(self):
        pref = make_pref(opted_in=[0, 3], opted_out=[3, 4, 6])
        once = sanitize_weekly_preference(pref, [3, 4])
        twice = sanitize_weekly_preference(once, [3, 4])
        assert once == twice
