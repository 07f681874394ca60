"""
Daily override store
An explicit opt-in/opt-out for one resident, meal and calendar date.
Upsert keyed by the triple, last write wins, no history. No check that the
meal is served that day: resolution ignores what it cannot use.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.database import DatabaseManager
from ..models.meal import DailyOverride

OVERRIDE_COLUMNS = "resident_id, meal_id, meal_date, is_opted, updated_at"


class DailyOverrideService:

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get(self, resident_id: str, meal_id: int, meal_date: date) -> Optional[bool]:
        row = self.db.execute_one(
            "SELECT is_opted FROM resident_meal_overrides WHERE resident_id = ? AND meal_id = ? AND meal_date = ?",
            [resident_id, meal_id, meal_date]
        )
        return bool(row[0]) if row else None

    def get_record(self, resident_id: str, meal_id: int, meal_date: date) -> Optional[DailyOverride]:
        row = self.db.fetch_dict(
            f"SELECT {OVERRIDE_COLUMNS} FROM resident_meal_overrides "
            "WHERE resident_id = ? AND meal_id = ? AND meal_date = ?",
            [resident_id, meal_id, meal_date]
        )
        return DailyOverride(**row) if row else None

    def set(self, resident_id: str, meal_id: int, meal_date: date, is_opted: bool) -> DailyOverride:
        """Upsert; joins the caller's transaction when there is one"""
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO resident_meal_overrides (resident_id, meal_id, meal_date, is_opted, updated_at)
                VALUES (?, ?, ?, ?, now())
                ON CONFLICT (resident_id, meal_id, meal_date) DO UPDATE SET
                    is_opted = excluded.is_opted,
                    updated_at = excluded.updated_at
                """,
                [resident_id, meal_id, meal_date, is_opted]
            )
            return self.get_record(resident_id, meal_id, meal_date)

    def list_for_resident(self, resident_id: str, dates: Iterable[date]) -> List[DailyOverride]:
        dates = list(dates)
        if not dates:
            return []
        rows = self.db.fetch_dicts(
            f"SELECT {OVERRIDE_COLUMNS} FROM resident_meal_overrides "
            f"WHERE resident_id = ? AND meal_date IN ({','.join(['?'] * len(dates))}) "
            "ORDER BY meal_date, meal_id",
            [resident_id] + dates
        )
        return [DailyOverride(**row) for row in rows]

    def list_for_dates(self, meal_ids: List[int], dates: Iterable[date]
                       ) -> Dict[Tuple[str, int, date], bool]:
        """(resident id, meal id, date) -> is_opted, for bulk aggregation reads"""
        dates = list(dates)
        if not meal_ids or not dates:
            return {}
        rows = self.db.execute_query(
            "SELECT resident_id, meal_id, meal_date, is_opted FROM resident_meal_overrides "
            f"WHERE meal_id IN ({','.join(['?'] * len(meal_ids))}) "
            f"AND meal_date IN ({','.join(['?'] * len(dates))})",
            list(meal_ids) + dates
        )
        return {(row[0], row[1], row[2]): bool(row[3]) for row in rows}

    def delete_for_resident(self, conn, resident_id: str) -> None:
        conn.execute("DELETE FROM resident_meal_overrides WHERE resident_id = ?", [resident_id])
