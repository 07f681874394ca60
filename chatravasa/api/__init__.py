"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import hostels, meals, resident_meals

api_router = APIRouter()

api_router.include_router(resident_meals.router, prefix="/resident/meals", tags=["resident meals"])
api_router.include_router(hostels.router, prefix="/hostels", tags=["hostels"])
api_router.include_router(meals.router, prefix="/hostels/{slug}/meals", tags=["meals"])
