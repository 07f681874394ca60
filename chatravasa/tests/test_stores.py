"""
Storage service tests: catalog, weekly preferences, daily overrides,
hostel records and permissions against an in-memory database.
"""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import (
    DuplicateResourceError,
    HostelNotFoundError,
    MealNotFoundError,
    PermissionDeniedError,
    ResidentNotFoundError,
    ValidationError,
)
from ..core.permissions import HostelAction, PermissionService
from ..models.hostel import HostelCreate
from ..models.meal import MealCreate, MealUpdate, MenuItem
from ..services.audit_service import list_operations
from ..services.catalog_service import MealCatalogService, group_menu
from ..services.hostel_service import HostelService
from ..services.override_service import DailyOverrideService
from ..services.preference_service import WeeklyPreferenceService, toggle_weekday
from .conftest import ADMIN_ID, OTHER_RESIDENT_ID, RESIDENT_ID


class TestMealCatalog:

    def test_list_meals_ordered_by_timing(self, test_db, hostel, meals):
        listed = MealCatalogService(test_db).list_meals(hostel.id)
        assert [meal.name for meal in listed] == ["Breakfast", "Lunch"]
        assert listed[1].served_weekdays == [1, 2, 3, 4, 5]
        assert listed[0].edit_deadline_hours == 12

    def test_default_deadline_from_settings(self, test_db, hostel):
        meal = MealCatalogService(test_db).create_meal(
            hostel.id, MealCreate(name="Dinner", timing="20:00", served_weekdays=[0, 6, 6]), ADMIN_ID
        )
        assert meal.edit_deadline_hours == 2
        assert meal.served_weekdays == [0, 6]

    @pytest.mark.parametrize("fields", [
        {"served_weekdays": []},
        {"served_weekdays": [7]},
        {"edit_deadline_hours": -1},
        {"edit_deadline_hours": 1e8},
        {"timing": "8am"},
        {"timing": "24:00"},
        {"name": "   "},
    ])
    def test_create_validation(self, fields):
        data = {"name": "Dinner", "timing": "20:00", "served_weekdays": [1], "edit_deadline_hours": 2}
        data.update(fields)
        with pytest.raises(PydanticValidationError):
            MealCreate(**data)

    def test_update_rejects_oversized_deadline(self):
        with pytest.raises(PydanticValidationError):
            MealUpdate(edit_deadline_hours=24 * 30 + 1)

    def test_menu_grouped_by_food(self, test_db, meals):
        catalog = MealCatalogService(test_db)
        rows = catalog.list_menu([meals["breakfast"].meal_id])
        assert {row.food: row.weekdays for row in rows} == {"Poha": [1, 3], "Idli": [4]}
        assert catalog.menu_by_weekday([meals["breakfast"].meal_id]) == {
            meals["breakfast"].meal_id: {1: "Poha", 3: "Poha", 4: "Idli"}
        }

    def test_group_menu_skips_blank_food(self):
        items = [MenuItem(weekday=2, food="Dosa "), MenuItem(weekday=0, food="Dosa"), MenuItem(weekday=1, food=" ")]
        assert group_menu(items) == {"Dosa": [0, 2]}

    def test_update_meal_partial(self, test_db, hostel, meals):
        catalog = MealCatalogService(test_db)
        lunch = meals["lunch"]
        updated = catalog.update_meal(
            hostel.id, lunch.meal_id,
            MealUpdate(served_weekdays=[1, 2], menu=[MenuItem(weekday=1, food="Thali")]),
            ADMIN_ID,
        )
        assert updated.served_weekdays == [1, 2]
        assert updated.timing == "13:00"
        assert [row.food for row in catalog.list_menu([lunch.meal_id])] == ["Thali"]

    def test_update_meal_of_other_hostel_not_found(self, test_db, meals):
        other = HostelService(test_db).create_hostel(HostelCreate(hostel_slug="moonlight", name="Moonlight"), "admin-2")
        with pytest.raises(MealNotFoundError):
            MealCatalogService(test_db).update_meal(other.id, meals["lunch"].meal_id, MealUpdate(name="X"), "admin-2")

    def test_delete_meal_leaves_orphans(self, test_db, hostel, residents, meals):
        lunch = meals["lunch"]
        WeeklyPreferenceService(test_db).set(RESIDENT_ID, lunch.meal_id, 1, False)
        DailyOverrideService(test_db).set(RESIDENT_ID, lunch.meal_id, date(2024, 1, 4), False)

        MealCatalogService(test_db).delete_meal(hostel.id, lunch.meal_id, ADMIN_ID)

        assert MealCatalogService(test_db).get_meal(lunch.meal_id) is None
        assert WeeklyPreferenceService(test_db).get(RESIDENT_ID, lunch.meal_id).opted_out_weekdays == [1]
        assert DailyOverrideService(test_db).get(RESIDENT_ID, lunch.meal_id, date(2024, 1, 4)) is False

    def test_writes_are_audited(self, test_db, hostel, meals):
        actions = [entry["action"] for entry in list_operations(test_db, actor_id=ADMIN_ID)]
        assert actions.count("meal_create") == 2
        assert "hostel_create" in actions


class TestWeeklyPreferences:

    def test_toggle_weekday(self):
        assert toggle_weekday([1, 2], [3], 3, True) == ([1, 2, 3], [])
        assert toggle_weekday([1, 2], [3], 2, False) == ([1], [2, 3])

    def test_get_absent_is_empty(self, test_db):
        pref = WeeklyPreferenceService(test_db).get(RESIDENT_ID, 99)
        assert pref.opted_in_weekdays == [] and pref.opted_out_weekdays == []

    def test_toggle_exclusivity(self, test_db, meals):
        store = WeeklyPreferenceService(test_db)
        meal_id = meals["breakfast"].meal_id

        pref = store.set(RESIDENT_ID, meal_id, 3, False)
        assert 3 in pref.opted_out_weekdays and 3 not in pref.opted_in_weekdays

        pref = store.set(RESIDENT_ID, meal_id, 3, True)
        assert 3 in pref.opted_in_weekdays and 3 not in pref.opted_out_weekdays

    def test_single_weekday_writes_do_not_clobber(self, test_db, meals):
        store = WeeklyPreferenceService(test_db)
        meal_id = meals["breakfast"].meal_id
        store.set(RESIDENT_ID, meal_id, 1, False)
        store.set(RESIDENT_ID, meal_id, 2, True)
        store.set(RESIDENT_ID, meal_id, 5, False)
        pref = store.get(RESIDENT_ID, meal_id)
        assert pref.opted_in_weekdays == [2]
        assert pref.opted_out_weekdays == [1, 5]

    def test_list_for_meals_filters_residents(self, test_db, meals):
        store = WeeklyPreferenceService(test_db)
        meal_id = meals["breakfast"].meal_id
        store.set(RESIDENT_ID, meal_id, 1, False)
        store.set(OTHER_RESIDENT_ID, meal_id, 1, True)
        assert set(store.list_for_meals([meal_id])) == {(RESIDENT_ID, meal_id), (OTHER_RESIDENT_ID, meal_id)}
        assert set(store.list_for_meals([meal_id], [RESIDENT_ID])) == {(RESIDENT_ID, meal_id)}
        assert store.list_for_meals([meal_id], []) == {}


class TestDailyOverrides:

    def test_absent_override(self, test_db):
        assert DailyOverrideService(test_db).get(RESIDENT_ID, 1, date(2024, 1, 4)) is None

    def test_set_override_idempotent(self, test_db, meals):
        store = DailyOverrideService(test_db)
        meal_id = meals["lunch"].meal_id
        slot = date(2024, 1, 4)
        store.set(RESIDENT_ID, meal_id, slot, True)
        once = store.list_for_dates([meal_id], [slot])
        store.set(RESIDENT_ID, meal_id, slot, True)
        assert store.list_for_dates([meal_id], [slot]) == once == {(RESIDENT_ID, meal_id, slot): True}

    def test_last_write_wins(self, test_db, meals):
        store = DailyOverrideService(test_db)
        meal_id = meals["lunch"].meal_id
        slot = date(2024, 1, 4)
        store.set(RESIDENT_ID, meal_id, slot, True)
        record = store.set(RESIDENT_ID, meal_id, slot, False)
        assert record.is_opted is False
        assert record.key == f"{meal_id}:2024-01-04"
        assert len(store.list_for_resident(RESIDENT_ID, [slot])) == 1

    def test_override_on_unserved_day_accepted(self, test_db, meals):
        # lunch is not served on Sundays
        store = DailyOverrideService(test_db)
        store.set(RESIDENT_ID, meals["lunch"].meal_id, date(2024, 1, 7), True)
        assert store.get(RESIDENT_ID, meals["lunch"].meal_id, date(2024, 1, 7)) is True


class TestHostelRecords:

    def test_duplicate_slug(self, test_db, hostel):
        with pytest.raises(DuplicateResourceError):
            HostelService(test_db).create_hostel(HostelCreate(hostel_slug="sunrise", name="Again"), ADMIN_ID)

    def test_unknown_timezone_rejected(self, test_db):
        with pytest.raises(ValidationError):
            HostelService(test_db).create_hostel(
                HostelCreate(hostel_slug="nowhere", name="Nowhere", timezone="Mars/Olympus"), ADMIN_ID
            )

    def test_unknown_slug(self, test_db):
        with pytest.raises(HostelNotFoundError):
            HostelService(test_db).get_hostel_by_slug("missing")

    def test_resident_belongs_to_one_hostel(self, test_db, residents):
        other = HostelService(test_db).create_hostel(HostelCreate(hostel_slug="moonlight", name="Moonlight"), "admin-2")
        with pytest.raises(DuplicateResourceError):
            HostelService(test_db).add_resident(other.id, RESIDENT_ID, "admin-2")

    def test_remove_resident_deletes_choices(self, test_db, hostel, residents, meals):
        meal_id = meals["breakfast"].meal_id
        WeeklyPreferenceService(test_db).set(RESIDENT_ID, meal_id, 1, False)
        DailyOverrideService(test_db).set(RESIDENT_ID, meal_id, date(2024, 1, 4), False)

        service = HostelService(test_db)
        service.remove_resident(hostel.id, RESIDENT_ID, ADMIN_ID)

        assert service.list_resident_ids(hostel.id) == [OTHER_RESIDENT_ID]
        assert WeeklyPreferenceService(test_db).list_for_resident(RESIDENT_ID) == {}
        assert DailyOverrideService(test_db).get(RESIDENT_ID, meal_id, date(2024, 1, 4)) is None
        with pytest.raises(ResidentNotFoundError):
            service.remove_resident(hostel.id, RESIDENT_ID, ADMIN_ID)


class TestPermissions:

    def test_admin_has_every_capability(self, test_db, hostel):
        permissions = PermissionService(test_db)
        for action in HostelAction:
            assert permissions.has_permission(ADMIN_ID, hostel.id, action)

    def test_staff_role_flags(self, test_db, hostel):
        service = HostelService(test_db)
        cook = service.create_staff_role(hostel.id, "Cook", ADMIN_ID, view_meals=True)
        service.assign_staff(hostel.id, "cook-1", cook.id, ADMIN_ID)

        permissions = PermissionService(test_db)
        assert permissions.has_permission("cook-1", hostel.id, HostelAction.VIEW_MEALS)
        assert not permissions.has_permission("cook-1", hostel.id, HostelAction.MANAGE_MEALS)
        assert not permissions.has_permission("cook-1", hostel.id, HostelAction.ADMIN)
        with pytest.raises(PermissionDeniedError):
            permissions.require("cook-1", hostel.id, HostelAction.MANAGE_MEALS)

    def test_role_of_other_hostel_grants_nothing(self, test_db, hostel):
        other = HostelService(test_db).create_hostel(HostelCreate(hostel_slug="moonlight", name="Moonlight"), "admin-2")
        manager = HostelService(test_db).create_staff_role(other.id, "Manager", "admin-2", view_meals=True, manage_meals=True)
        HostelService(test_db).assign_staff(other.id, "mgr-1", manager.id, "admin-2")
        assert not PermissionService(test_db).has_permission("mgr-1", hostel.id, HostelAction.VIEW_MEALS)
        assert PermissionService(test_db).has_permission("mgr-1", other.id, HostelAction.MANAGE_MEALS)

    def test_assign_role_of_other_hostel_rejected(self, test_db, hostel):
        other = HostelService(test_db).create_hostel(HostelCreate(hostel_slug="moonlight", name="Moonlight"), "admin-2")
        foreign = HostelService(test_db).create_staff_role(other.id, "Cook", "admin-2", view_meals=True)
        with pytest.raises(ValidationError):
            HostelService(test_db).assign_staff(hostel.id, "cook-9", foreign.id, ADMIN_ID)
