"""
Business logic services.
Catalog, preference and override stores, resolution, choices, analytics.
"""

from .analytics_service import MealAnalyticsService
from .catalog_service import MealCatalogService
from .export_service import ExportService
from .hostel_service import HostelService
from .meal_choice_service import MealChoiceService
from .override_service import DailyOverrideService
from .preference_service import WeeklyPreferenceService
from .snapshot_cache import SnapshotCache

__all__ = [
    "DailyOverrideService",
    "ExportService",
    "HostelService",
    "MealAnalyticsService",
    "MealCatalogService",
    "MealChoiceService",
    "SnapshotCache",
    "WeeklyPreferenceService",
]
