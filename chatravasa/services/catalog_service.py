"""
Meal catalog service
Which meals a hostel serves, on which weekdays, when, and how long before
serving time choices lock. Also owns the weekly menu shown next to each meal.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..config.settings import settings
from ..core.database import DatabaseManager
from ..core.exceptions import MealNotFoundError
from ..models.meal import Meal, MealCreate, MealUpdate, MenuItem, WeeklyMenuRow
from .audit_service import record_operation

logger = logging.getLogger(__name__)

MEAL_COLUMNS = "id, hostel_id, name, timing, weekdays, status_deadline, created_at, updated_at"


def _row_to_meal(row: dict) -> Meal:
    return Meal(
        meal_id=row["id"],
        hostel_id=row["hostel_id"],
        name=row["name"],
        timing=row["timing"],
        served_weekdays=row["weekdays"] or [],
        edit_deadline_hours=row["status_deadline"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def group_menu(items: Iterable[MenuItem]) -> Dict[str, List[int]]:
    """One entry per distinct food with every weekday it is served"""
    groups: Dict[str, set] = defaultdict(set)
    for item in items:
        food = item.food.strip()
        if food:
            groups[food].add(item.weekday)
    return {food: sorted(days) for food, days in groups.items()}


class MealCatalogService:

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_meals(self, hostel_id: int) -> List[Meal]:
        rows = self.db.fetch_dicts(
            f"SELECT {MEAL_COLUMNS} FROM hostel_meals WHERE hostel_id = ? ORDER BY timing, id",
            [hostel_id]
        )
        return [_row_to_meal(row) for row in rows]

    def get_meal(self, meal_id: int) -> Optional[Meal]:
        row = self.db.fetch_dict(
            f"SELECT {MEAL_COLUMNS} FROM hostel_meals WHERE id = ?", [meal_id]
        )
        return _row_to_meal(row) if row else None

    def get_hostel_meal(self, hostel_id: int, meal_id: int) -> Meal:
        """Meal that must exist and belong to the hostel"""
        meal = self.get_meal(meal_id)
        if meal is None or meal.hostel_id != hostel_id:
            raise MealNotFoundError(f"Meal not found: {meal_id}", details={"meal_id": meal_id})
        return meal

    def create_meal(self, hostel_id: int, meal_data: MealCreate, actor_id: str) -> Meal:
        deadline = meal_data.edit_deadline_hours
        if deadline is None:
            deadline = settings.default_edit_deadline_hours

        with self.db.transaction() as conn:
            row = conn.execute(
                """
                INSERT INTO hostel_meals (hostel_id, name, timing, weekdays, status_deadline)
                VALUES (?, ?, ?, ?, ?)
                RETURNING id
                """,
                [hostel_id, meal_data.name, meal_data.timing, meal_data.served_weekdays, deadline]
            ).fetchone()
            meal_id = row[0]

            if meal_data.menu:
                self._replace_menu(conn, meal_id, meal_data.menu)

            record_operation(conn, "meal_create", actor_id, {
                "hostel_id": hostel_id,
                "meal_id": meal_id,
                "name": meal_data.name,
            })

        logger.info("meal %s created in hostel %s", meal_id, hostel_id,
                    extra={"actor_id": actor_id, "hostel_id": hostel_id, "meal_id": meal_id})
        return self.get_meal(meal_id)

    def update_meal(self, hostel_id: int, meal_id: int, changes: MealUpdate, actor_id: str) -> Meal:
        """
        Apply a partial update.

        Changing served_weekdays leaves stored weekly preferences alone; reads
        filter them against the new schedule.
        """
        column_map = {
            "name": "name",
            "timing": "timing",
            "served_weekdays": "weekdays",
            "edit_deadline_hours": "status_deadline",
        }
        provided = changes.model_dump(exclude_unset=True, exclude={"menu"})
        assignments, params = [], []
        for field, value in provided.items():
            if value is None:
                continue
            assignments.append(f"{column_map[field]} = ?")
            params.append(value)

        with self.db.transaction() as conn:
            self.get_hostel_meal(hostel_id, meal_id)

            if assignments:
                conn.execute(
                    f"UPDATE hostel_meals SET {', '.join(assignments)}, updated_at = now() WHERE id = ?",
                    params + [meal_id]
                )
            if changes.menu is not None:
                self._replace_menu(conn, meal_id, changes.menu)

            record_operation(conn, "meal_update", actor_id, {
                "hostel_id": hostel_id,
                "meal_id": meal_id,
                "fields": sorted(k for k, v in provided.items() if v is not None)
                          + (["menu"] if changes.menu is not None else []),
            })

        logger.info("meal %s updated", meal_id,
                    extra={"actor_id": actor_id, "hostel_id": hostel_id, "meal_id": meal_id})
        return self.get_meal(meal_id)

    def delete_meal(self, hostel_id: int, meal_id: int, actor_id: str) -> None:
        """Delete the meal and its menu. Preferences and overrides stay as orphans."""
        with self.db.transaction() as conn:
            self.get_hostel_meal(hostel_id, meal_id)
            conn.execute("DELETE FROM hostel_weekly_menu WHERE hostel_meal_id = ?", [meal_id])
            conn.execute("DELETE FROM hostel_meals WHERE id = ?", [meal_id])
            record_operation(conn, "meal_delete", actor_id, {"hostel_id": hostel_id, "meal_id": meal_id})

        logger.info("meal %s deleted", meal_id,
                    extra={"actor_id": actor_id, "hostel_id": hostel_id, "meal_id": meal_id})

    def _replace_menu(self, conn, meal_id: int, items: Iterable[MenuItem]) -> None:
        conn.execute("DELETE FROM hostel_weekly_menu WHERE hostel_meal_id = ?", [meal_id])
        for food, weekdays in group_menu(items).items():
            conn.execute(
                "INSERT INTO hostel_weekly_menu (hostel_meal_id, food, weekdays) VALUES (?, ?, ?)",
                [meal_id, food, weekdays]
            )

    def list_menu(self, meal_ids: List[int]) -> List[WeeklyMenuRow]:
        if not meal_ids:
            return []
        placeholders = ",".join(["?"] * len(meal_ids))
        rows = self.db.fetch_dicts(
            f"""
            SELECT id, hostel_meal_id AS meal_id, food, weekdays
            FROM hostel_weekly_menu
            WHERE hostel_meal_id IN ({placeholders})
            ORDER BY hostel_meal_id, id
            """,
            list(meal_ids)
        )
        return [WeeklyMenuRow(**row) for row in rows]

    def menu_by_weekday(self, meal_ids: List[int]) -> Dict[int, Dict[int, str]]:
        """meal id -> weekday -> food"""
        result: Dict[int, Dict[int, str]] = {meal_id: {} for meal_id in meal_ids}
        for row in self.list_menu(meal_ids):
            for weekday in row.weekdays:
                result[row.meal_id][weekday] = row.food
        return result
