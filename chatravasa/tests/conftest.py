"""
Test fixtures
In-memory DuckDB, a pinned clock, one seeded hostel and a TestClient wired
to both.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from ..app import create_app
from ..config.settings import Settings
from ..core.clock import FixedClock
from ..core.database import DatabaseManager
from ..core.security import security_manager
from ..models.hostel import HostelCreate
from ..models.meal import MealCreate, MenuItem
from ..services.catalog_service import MealCatalogService
from ..services.hostel_service import HostelService
from ..services.meal_choice_service import MealChoiceService

ADMIN_ID = "admin-1"
RESIDENT_ID = "res-1"
OTHER_RESIDENT_ID = "res-2"

# Wednesday 2024-01-03, 10:00 in Asia/Kolkata (UTC+05:30)
NOW = datetime(2024, 1, 3, 4, 30, tzinfo=timezone.utc)


def token_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {security_manager.create_jwt_token(user_id)}"}


@pytest.fixture
def test_settings():
    return Settings(
        database_url="duckdb:///:memory:",
        hostel_timezone="Asia/Kolkata",
        snapshot_cache_ttl_seconds=0,
        log_json=False,
        log_level="WARNING",
        log_file=None,
    )


@pytest.fixture
def test_db():
    db = DatabaseManager(":memory:")
    yield db
    db.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def hostel(test_db):
    return HostelService(test_db).create_hostel(
        HostelCreate(hostel_slug="sunrise", name="Sunrise Hostel", timezone="Asia/Kolkata"),
        ADMIN_ID,
    )


@pytest.fixture
def residents(test_db, hostel):
    service = HostelService(test_db)
    service.add_resident(hostel.id, RESIDENT_ID, ADMIN_ID, name="Asha", room="101")
    service.add_resident(hostel.id, OTHER_RESIDENT_ID, ADMIN_ID, name="Ravi", room="102")
    return [RESIDENT_ID, OTHER_RESIDENT_ID]


@pytest.fixture
def meals(test_db, hostel):
    """Breakfast every day (12h deadline), lunch Monday-Friday (2h deadline)"""
    catalog = MealCatalogService(test_db)
    breakfast = catalog.create_meal(hostel.id, MealCreate(
        name="Breakfast",
        timing="08:00",
        served_weekdays=[0, 1, 2, 3, 4, 5, 6],
        edit_deadline_hours=12,
        menu=[MenuItem(weekday=1, food="Poha"), MenuItem(weekday=3, food="Poha"), MenuItem(weekday=4, food="Idli")],
    ), ADMIN_ID)
    lunch = catalog.create_meal(hostel.id, MealCreate(
        name="Lunch",
        timing="13:00",
        served_weekdays=[1, 2, 3, 4, 5],
        edit_deadline_hours=2,
    ), ADMIN_ID)
    return {"breakfast": breakfast, "lunch": lunch}


@pytest.fixture
def choice_service(test_db, clock):
    return MealChoiceService(test_db, clock=clock)


@pytest.fixture
def app_instance(test_db, clock, test_settings):
    return create_app(db=test_db, clock=clock, settings=test_settings)


@pytest.fixture
def client(app_instance):
    return TestClient(app_instance)


@pytest.fixture
def admin_headers():
    return token_headers(ADMIN_ID)


@pytest.fixture
def resident_headers():
    return token_headers(RESIDENT_ID)
