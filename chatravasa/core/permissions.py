"""
Hostel capability checks
The hostel admin holds every capability; staff members hold the flags of
the single role assigned to them, and only for the role's own hostel.
"""

from enum import Enum

from .database import DatabaseManager
from .exceptions import PermissionDeniedError


class HostelAction(str, Enum):
    VIEW_MEALS = "view_meals"
    MANAGE_MEALS = "manage_meals"
    ADMIN = "admin"  # hostel admin only: residents, staff roles


# Role flag columns that may be consulted; keeps the SQL below parameter-free
_ROLE_FLAGS = {HostelAction.VIEW_MEALS: "view_meals", HostelAction.MANAGE_MEALS: "manage_meals"}


class PermissionService:

    def __init__(self, db: DatabaseManager):
        self.db = db

    def is_hostel_admin(self, actor_id: str, hostel_id: int) -> bool:
        row = self.db.execute_one(
            "SELECT admin_user_id FROM hostels WHERE id = ?", [hostel_id]
        )
        return bool(row) and row[0] == actor_id

    def has_permission(self, actor_id: str, hostel_id: int, action: HostelAction) -> bool:
        if self.is_hostel_admin(actor_id, hostel_id):
            return True

        flag = _ROLE_FLAGS.get(HostelAction(action))
        if flag is None:
            return False

        row = self.db.execute_one(
            f"""
            SELECT r.{flag}
            FROM hostel_staff s
            JOIN hostel_staff_roles r ON r.id = s.role_id
            WHERE s.staff_member_id = ? AND r.hostel_id = ?
            """,
            [actor_id, hostel_id]
        )
        return bool(row and row[0])

    def require(self, actor_id: str, hostel_id: int, action: HostelAction) -> None:
        if not self.has_permission(actor_id, hostel_id, action):
            raise PermissionDeniedError(
                "Forbidden",
                details={"hostel_id": hostel_id, "action": HostelAction(action).value}
            )
