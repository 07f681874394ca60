"""
Resident meal routes
The authenticated user's own meal screen and choices.
"""

from fastapi import APIRouter, Depends, Query

from ...core.error_handler import create_success_response
from ...core.security import get_current_user_id
from ...schemas.common import ApiResponse, ErrorResponse, OperationLogList
from ...schemas.meal import (
    DailyChoiceRequest,
    DailyOverrideResponse,
    MealsSnapshotResponse,
    StatusResponse,
    WeeklyChoiceRequest,
    WeeklyPreferenceResponse,
)
from ...services.meal_choice_service import MealChoiceService
from ..deps import get_choice_service

router = APIRouter()


@router.get("", response_model=ApiResponse[MealsSnapshotResponse])
def get_meals_snapshot(
    resident_id: str = Depends(get_current_user_id),
    service: MealChoiceService = Depends(get_choice_service),
):
    """
    Meals, sanitized weekly preferences, today's and tomorrow's overrides,
    resolved statuses and the weekly menu for the caller's hostel
    """
    return create_success_response(service.get_meals_snapshot(resident_id))


@router.get("/status", response_model=ApiResponse[StatusResponse])
def get_meal_status(
    meal_id: int = Query(...),
    date: str = Query(..., description="YYYY-MM-DD"),
    resident_id: str = Depends(get_current_user_id),
    service: MealChoiceService = Depends(get_choice_service),
):
    status = service.resolve(resident_id, meal_id, date)
    return create_success_response(status.model_dump())


@router.get("/history", response_model=ApiResponse[OperationLogList])
def get_choice_history(
    limit: int = Query(50, ge=1, le=500),
    resident_id: str = Depends(get_current_user_id),
    service: MealChoiceService = Depends(get_choice_service),
):
    """The caller's recent daily and weekly choices, newest first"""
    return create_success_response({"items": service.history(resident_id, limit=limit)})


@router.post(
    "/daily",
    response_model=ApiResponse[DailyOverrideResponse],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def set_daily_choice(
    req: DailyChoiceRequest,
    resident_id: str = Depends(get_current_user_id),
    service: MealChoiceService = Depends(get_choice_service),
):
    data = service.set_daily_choice(resident_id, req.meal_id, req.date, req.is_opted)
    return create_success_response(data, message="Daily choice saved")


@router.post(
    "/weekly",
    response_model=ApiResponse[WeeklyPreferenceResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def set_weekly_choice(
    req: WeeklyChoiceRequest,
    resident_id: str = Depends(get_current_user_id),
    service: MealChoiceService = Depends(get_choice_service),
):
    data = service.set_weekly_choice(resident_id, req.meal_id, req.weekday, req.choice)
    return create_success_response(data, message="Weekly choice saved")
