"""
FastAPI dependencies
The database manager, clock and snapshot cache live on app.state and are
handed to services per request; hostel routes resolve the slug and check
the actor's capability before the handler runs.
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from ..core.clock import Clock
from ..core.database import DatabaseManager
from ..core.permissions import HostelAction, PermissionService
from ..core.security import get_current_user_id
from ..models.hostel import Hostel
from ..services.analytics_service import MealAnalyticsService
from ..services.hostel_service import HostelService
from ..services.meal_choice_service import MealChoiceService
from ..services.snapshot_cache import SnapshotCache


def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_cache(request: Request) -> SnapshotCache:
    return request.app.state.snapshot_cache


def get_choice_service(
    db: DatabaseManager = Depends(get_db),
    clock: Clock = Depends(get_clock),
    cache: SnapshotCache = Depends(get_cache),
) -> MealChoiceService:
    return MealChoiceService(db, clock=clock, cache=cache)


def get_analytics_service(
    db: DatabaseManager = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MealAnalyticsService:
    return MealAnalyticsService(db, clock=clock)


@dataclass
class HostelAccess:
    """Authenticated actor plus the hostel named in the path"""
    actor_id: str
    hostel: Hostel


def require_hostel_action(action: HostelAction):
    """Dependency factory: 401 without a token, 404 for an unknown slug, 403 without the capability"""

    def dependency(
        slug: str,
        actor_id: str = Depends(get_current_user_id),
        db: DatabaseManager = Depends(get_db),
    ) -> HostelAccess:
        hostel = HostelService(db).get_hostel_by_slug(slug)
        PermissionService(db).require(actor_id, hostel.id, action)
        return HostelAccess(actor_id=actor_id, hostel=hostel)

    return dependency
