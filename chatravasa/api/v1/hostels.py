"""
Hostel administration routes
Creating a hostel makes the caller its admin; residents and staff roles are
managed by that admin only.
"""

from typing import List

from fastapi import APIRouter, Depends

from ...core.error_handler import create_success_response
from ...core.permissions import HostelAction
from ...core.security import get_current_user_id
from ...models.hostel import HostelCreate
from ...schemas.common import ApiResponse
from ...schemas.hostel import (
    HostelResponse,
    ResidentCreateRequest,
    ResidentResponse,
    StaffAssignRequest,
    StaffRoleCreateRequest,
    StaffRoleResponse,
)
from ...services.hostel_service import HostelService
from ..deps import HostelAccess, get_cache, get_db, require_hostel_action

router = APIRouter()

is_admin = require_hostel_action(HostelAction.ADMIN)


@router.post("", response_model=ApiResponse[HostelResponse], status_code=201)
def create_hostel(
    req: HostelCreate,
    actor_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
):
    hostel = HostelService(db).create_hostel(req, actor_id)
    return create_success_response(hostel.model_dump(), message="Hostel created")


@router.get("/{slug}", response_model=ApiResponse[HostelResponse])
def get_hostel(access: HostelAccess = Depends(is_admin)):
    return create_success_response(access.hostel.model_dump())


@router.get("/{slug}/residents", response_model=ApiResponse[List[ResidentResponse]])
def list_residents(access: HostelAccess = Depends(is_admin), db=Depends(get_db)):
    residents = HostelService(db).list_residents(access.hostel.id)
    return create_success_response([resident.model_dump() for resident in residents])


@router.post("/{slug}/residents", response_model=ApiResponse[ResidentResponse], status_code=201)
def add_resident(
    req: ResidentCreateRequest,
    access: HostelAccess = Depends(is_admin),
    db=Depends(get_db),
    cache=Depends(get_cache),
):
    resident = HostelService(db).add_resident(
        access.hostel.id, req.resident_id, access.actor_id, name=req.name, room=req.room
    )
    cache.invalidate(req.resident_id)
    return create_success_response(resident.model_dump(), message="Resident added")


@router.delete("/{slug}/residents/{resident_id}", response_model=ApiResponse[dict])
def remove_resident(
    resident_id: str,
    access: HostelAccess = Depends(is_admin),
    db=Depends(get_db),
    cache=Depends(get_cache),
):
    HostelService(db).remove_resident(access.hostel.id, resident_id, access.actor_id)
    cache.invalidate(resident_id)
    return create_success_response({"resident_id": resident_id}, message="Resident removed")


@router.post("/{slug}/staff-roles", response_model=ApiResponse[StaffRoleResponse], status_code=201)
def create_staff_role(
    req: StaffRoleCreateRequest,
    access: HostelAccess = Depends(is_admin),
    db=Depends(get_db),
):
    role = HostelService(db).create_staff_role(
        access.hostel.id, req.title, access.actor_id,
        view_meals=req.view_meals, manage_meals=req.manage_meals
    )
    return create_success_response(role.model_dump(), message="Role created")


@router.post("/{slug}/staff", response_model=ApiResponse[dict])
def assign_staff(
    req: StaffAssignRequest,
    access: HostelAccess = Depends(is_admin),
    db=Depends(get_db),
):
    HostelService(db).assign_staff(access.hostel.id, req.staff_member_id, req.role_id, access.actor_id)
    return create_success_response(
        {"staff_member_id": req.staff_member_id, "role_id": req.role_id}, message="Staff assigned"
    )
