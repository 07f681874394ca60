"""
Hostel meal management routes
Catalog maintenance for admins and staff with manage_meals, analytics and
the headcount export for anyone with view_meals.
"""

import io
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ...core.error_handler import create_success_response
from ...core.permissions import HostelAction
from ...models.meal import MealCreate, MealUpdate
from ...schemas.common import ApiResponse
from ...schemas.meal import AnalyticsResponse, MealCatalogResponse, MealResponse
from ...services.analytics_service import MealAnalyticsService
from ...services.catalog_service import MealCatalogService
from ...services.export_service import ExportService
from ..deps import HostelAccess, get_analytics_service, get_cache, get_db, require_hostel_action

router = APIRouter()

can_view = require_hostel_action(HostelAction.VIEW_MEALS)
can_manage = require_hostel_action(HostelAction.MANAGE_MEALS)


@router.get("", response_model=ApiResponse[MealCatalogResponse])
def list_meals(access: HostelAccess = Depends(can_view), db=Depends(get_db)):
    catalog = MealCatalogService(db)
    meals = catalog.list_meals(access.hostel.id)
    menu = catalog.list_menu([meal.meal_id for meal in meals])
    return create_success_response({
        "meals": [meal.model_dump() for meal in meals],
        "menu": [row.model_dump() for row in menu],
    })


@router.post("", response_model=ApiResponse[MealResponse], status_code=201)
def create_meal(
    req: MealCreate,
    access: HostelAccess = Depends(can_manage),
    db=Depends(get_db),
    cache=Depends(get_cache),
):
    meal = MealCatalogService(db).create_meal(access.hostel.id, req, access.actor_id)
    cache.clear()
    return create_success_response(meal.model_dump(), message="Meal created")


@router.get("/analytics", response_model=ApiResponse[AnalyticsResponse])
def get_analytics(
    date: Optional[str] = Query(None, description="Reference date YYYY-MM-DD, defaults to hostel-local today"),
    access: HostelAccess = Depends(can_view),
    service: MealAnalyticsService = Depends(get_analytics_service),
):
    return create_success_response(service.get_analytics(access.hostel.id, date))


@router.get("/analytics/export")
def export_analytics(
    date: Optional[str] = Query(None, description="Reference date YYYY-MM-DD"),
    access: HostelAccess = Depends(can_view),
    service: MealAnalyticsService = Depends(get_analytics_service),
):
    """Headcount workbook for the kitchen"""
    analytics = service.get_analytics(access.hostel.id, date)
    excel_data = ExportService().export_analytics_excel(analytics)
    filename = f"{access.hostel.hostel_slug}_meals_{analytics['today'].isoformat()}.xlsx"
    return StreamingResponse(
        io.BytesIO(excel_data),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.patch("/{meal_id}", response_model=ApiResponse[MealResponse])
def update_meal(
    meal_id: int,
    req: MealUpdate,
    access: HostelAccess = Depends(can_manage),
    db=Depends(get_db),
    cache=Depends(get_cache),
):
    meal = MealCatalogService(db).update_meal(access.hostel.id, meal_id, req, access.actor_id)
    cache.clear()
    return create_success_response(meal.model_dump(), message="Meal updated")


@router.delete("/{meal_id}", response_model=ApiResponse[dict])
def delete_meal(
    meal_id: int,
    access: HostelAccess = Depends(can_manage),
    db=Depends(get_db),
    cache=Depends(get_cache),
):
    MealCatalogService(db).delete_meal(access.hostel.id, meal_id, access.actor_id)
    cache.clear()
    return create_success_response({"meal_id": meal_id}, message="Meal deleted")
