"""
Hostel administration
Hostels, their residents and staff roles: the records the meal engine reads
to know who belongs where and who may manage meals.
"""

import logging
from typing import List, Optional
from zoneinfo import ZoneInfo

from ..config.settings import settings
from ..core.clock import get_zone
from ..core.database import DatabaseManager
from ..core.exceptions import (
    DuplicateResourceError,
    HostelNotFoundError,
    ResidentNotFoundError,
    ValidationError,
)
from ..models.hostel import Hostel, HostelCreate, Resident, StaffRole
from .audit_service import record_operation
from .override_service import DailyOverrideService
from .preference_service import WeeklyPreferenceService

logger = logging.getLogger(__name__)


class HostelService:

    def __init__(self, db: DatabaseManager):
        self.db = db

    # hostels

    def create_hostel(self, data: HostelCreate, admin_user_id: str) -> Hostel:
        if data.timezone:
            get_zone(data.timezone)

        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT 1 FROM hostels WHERE hostel_slug = ?", [data.hostel_slug]
            ).fetchone()
            if existing:
                raise DuplicateResourceError(f"Hostel slug already taken: {data.hostel_slug}")
            row = conn.execute(
                "INSERT INTO hostels (hostel_slug, name, admin_user_id, timezone) VALUES (?, ?, ?, ?) RETURNING id",
                [data.hostel_slug, data.name, admin_user_id, data.timezone]
            ).fetchone()
            record_operation(conn, "hostel_create", admin_user_id, {"hostel_id": row[0], "slug": data.hostel_slug})

        logger.info("hostel %s created", data.hostel_slug, extra={"actor_id": admin_user_id, "hostel_id": row[0]})
        return self.get_hostel(row[0])

    def get_hostel(self, hostel_id: int) -> Hostel:
        row = self.db.fetch_dict(
            "SELECT id, hostel_slug, name, admin_user_id, timezone, created_at FROM hostels WHERE id = ?",
            [hostel_id]
        )
        if not row:
            raise HostelNotFoundError(f"Hostel not found: {hostel_id}")
        return Hostel(**row)

    def get_hostel_by_slug(self, slug: str) -> Hostel:
        row = self.db.fetch_dict(
            "SELECT id, hostel_slug, name, admin_user_id, timezone, created_at FROM hostels WHERE hostel_slug = ?",
            [slug]
        )
        if not row:
            raise HostelNotFoundError(f"Hostel not found: {slug}", details={"hostel_slug": slug})
        return Hostel(**row)

    def timezone_for(self, hostel: Optional[Hostel]) -> ZoneInfo:
        """The hostel's own zone, or the configured default"""
        if hostel is not None and hostel.timezone:
            return get_zone(hostel.timezone)
        return get_zone(settings.hostel_timezone)

    # residents

    def add_resident(self, hostel_id: int, resident_id: str, actor_id: str,
                     name: Optional[str] = None, room: Optional[str] = None) -> Resident:
        """Assign a user to the hostel, creating the resident record if needed"""
        with self.db.transaction() as conn:
            current = conn.execute("SELECT hostel_id FROM residents WHERE id = ?", [resident_id]).fetchone()
            if current and current[0] is not None and current[0] != hostel_id:
                raise DuplicateResourceError("Resident already belongs to another hostel",
                                             details={"resident_id": resident_id})
            if current:
                conn.execute(
                    "UPDATE residents SET hostel_id = ?, name = COALESCE(?, name), room = COALESCE(?, room) WHERE id = ?",
                    [hostel_id, name, room, resident_id]
                )
            else:
                conn.execute(
                    "INSERT INTO residents (id, hostel_id, name, room) VALUES (?, ?, ?, ?)",
                    [resident_id, hostel_id, name, room]
                )
            record_operation(conn, "resident_add", actor_id, {"hostel_id": hostel_id}, user_id=resident_id)

        return self.get_resident(resident_id)

    def get_resident(self, resident_id: str) -> Resident:
        row = self.db.fetch_dict(
            "SELECT id, hostel_id, name, room, created_at FROM residents WHERE id = ?", [resident_id]
        )
        if not row:
            raise ResidentNotFoundError(f"Resident not found: {resident_id}")
        return Resident(**row)

    def find_resident(self, resident_id: str) -> Optional[Resident]:
        row = self.db.fetch_dict(
            "SELECT id, hostel_id, name, room, created_at FROM residents WHERE id = ?", [resident_id]
        )
        return Resident(**row) if row else None

    def list_residents(self, hostel_id: int) -> List[Resident]:
        rows = self.db.fetch_dicts(
            "SELECT id, hostel_id, name, room, created_at FROM residents WHERE hostel_id = ? ORDER BY id",
            [hostel_id]
        )
        return [Resident(**row) for row in rows]

    def list_resident_ids(self, hostel_id: int) -> List[str]:
        rows = self.db.execute_query(
            "SELECT id FROM residents WHERE hostel_id = ? ORDER BY id", [hostel_id]
        )
        return [row[0] for row in rows]

    def remove_resident(self, hostel_id: int, resident_id: str, actor_id: str) -> None:
        """Full removal: the resident record plus their preferences and overrides"""
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM residents WHERE id = ? AND hostel_id = ?", [resident_id, hostel_id]
            ).fetchone()
            if not row:
                raise ResidentNotFoundError(f"Resident not found: {resident_id}")
            WeeklyPreferenceService(self.db).delete_for_resident(conn, resident_id)
            DailyOverrideService(self.db).delete_for_resident(conn, resident_id)
            conn.execute("DELETE FROM residents WHERE id = ?", [resident_id])
            record_operation(conn, "resident_remove", actor_id, {"hostel_id": hostel_id}, user_id=resident_id)

    # staff

    def create_staff_role(self, hostel_id: int, title: str, actor_id: str,
                          view_meals: bool = False, manage_meals: bool = False) -> StaffRole:
        title = title.strip()
        if not title:
            raise ValidationError("Role title must not be blank")
        with self.db.transaction() as conn:
            row = conn.execute(
                """
                INSERT INTO hostel_staff_roles (hostel_id, title, view_meals, manage_meals)
                VALUES (?, ?, ?, ?)
                RETURNING id, hostel_id, title, view_meals, manage_meals
                """,
                [hostel_id, title, view_meals, manage_meals]
            ).fetchone()
            record_operation(conn, "staff_role_create", actor_id, {"hostel_id": hostel_id, "role_id": row[0]})
        return StaffRole(id=row[0], hostel_id=row[1], title=row[2], view_meals=row[3], manage_meals=row[4])

    def assign_staff(self, hostel_id: int, staff_member_id: str, role_id: int, actor_id: str) -> None:
        """Give a user the role; a staff member holds one role at a time"""
        with self.db.transaction() as conn:
            role = conn.execute(
                "SELECT hostel_id FROM hostel_staff_roles WHERE id = ?", [role_id]
            ).fetchone()
            if not role or role[0] != hostel_id:
                raise ValidationError(f"Role {role_id} does not belong to this hostel")
            conn.execute(
                """
                INSERT INTO hostel_staff (staff_member_id, role_id) VALUES (?, ?)
                ON CONFLICT (staff_member_id) DO UPDATE SET role_id = excluded.role_id
                """,
                [staff_member_id, role_id]
            )
            record_operation(conn, "staff_assign", actor_id,
                             {"hostel_id": hostel_id, "role_id": role_id}, user_id=staff_member_id)
