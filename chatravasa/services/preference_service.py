"""
Weekly preference store
Per resident and meal, the weekdays defaulted to opted in and to opted out.
The only write is a single-weekday toggle, so two toggles on different
weekdays never overwrite each other.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from ..core.database import DatabaseManager
from ..models.meal import WeeklyPreference

PREFERENCE_COLUMNS = "resident_id, meal_id, is_opted_weekdays, not_opted_weekdays, updated_at"


def _row_to_preference(row: dict) -> WeeklyPreference:
    return WeeklyPreference(
        resident_id=row["resident_id"],
        meal_id=row["meal_id"],
        opted_in_weekdays=sorted(row["is_opted_weekdays"] or []),
        opted_out_weekdays=sorted(row["not_opted_weekdays"] or []),
        updated_at=row.get("updated_at"),
    )


def toggle_weekday(opted_in: Iterable[int], opted_out: Iterable[int],
                   weekday: int, desired_opted_in: bool) -> Tuple[List[int], List[int]]:
    """Move one weekday into the chosen set and out of the other"""
    opted_in = set(opted_in) - {weekday}
    opted_out = set(opted_out) - {weekday}
    if desired_opted_in:
        opted_in.add(weekday)
    else:
        opted_out.add(weekday)
    return sorted(opted_in), sorted(opted_out)


class WeeklyPreferenceService:

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get(self, resident_id: str, meal_id: int) -> WeeklyPreference:
        """Stored preference, or an empty one when nothing was recorded"""
        row = self.db.fetch_dict(
            f"SELECT {PREFERENCE_COLUMNS} FROM residents_weekly_meal_status WHERE resident_id = ? AND meal_id = ?",
            [resident_id, meal_id]
        )
        return _row_to_preference(row) if row else WeeklyPreference.empty(resident_id, meal_id)

    def set(self, resident_id: str, meal_id: int, weekday: int, desired_opted_in: bool) -> WeeklyPreference:
        """
        Single-weekday upsert.

        The served-weekday precondition is the caller's to enforce. Read and
        write run in one transaction so a concurrent toggle of another weekday
        is not lost.
        """
        with self.db.transaction() as conn:
            current = self.get(resident_id, meal_id)
            opted_in, opted_out = toggle_weekday(
                current.opted_in_weekdays, current.opted_out_weekdays, weekday, desired_opted_in
            )
            conn.execute(
                """
                INSERT INTO residents_weekly_meal_status
                    (resident_id, meal_id, is_opted_weekdays, not_opted_weekdays, updated_at)
                VALUES (?, ?, ?, ?, now())
                ON CONFLICT (resident_id, meal_id) DO UPDATE SET
                    is_opted_weekdays = excluded.is_opted_weekdays,
                    not_opted_weekdays = excluded.not_opted_weekdays,
                    updated_at = excluded.updated_at
                """,
                [resident_id, meal_id, opted_in, opted_out]
            )
            return self.get(resident_id, meal_id)

    def list_for_resident(self, resident_id: str) -> Dict[int, WeeklyPreference]:
        rows = self.db.fetch_dicts(
            f"SELECT {PREFERENCE_COLUMNS} FROM residents_weekly_meal_status WHERE resident_id = ?",
            [resident_id]
        )
        return {row["meal_id"]: _row_to_preference(row) for row in rows}

    def list_for_meals(self, meal_ids: List[int], resident_ids: Optional[List[str]] = None
                       ) -> Dict[Tuple[str, int], WeeklyPreference]:
        """(resident id, meal id) -> preference, for bulk aggregation reads"""
        if not meal_ids:
            return {}
        query = (
            f"SELECT {PREFERENCE_COLUMNS} FROM residents_weekly_meal_status "
            f"WHERE meal_id IN ({','.join(['?'] * len(meal_ids))})"
        )
        params: list = list(meal_ids)
        if resident_ids is not None:
            if not resident_ids:
                return {}
            query += f" AND resident_id IN ({','.join(['?'] * len(resident_ids))})"
            params += list(resident_ids)
        rows = self.db.fetch_dicts(query, params)
        return {(row["resident_id"], row["meal_id"]): _row_to_preference(row) for row in rows}

    def delete_for_resident(self, conn, resident_id: str) -> None:
        conn.execute("DELETE FROM residents_weekly_meal_status WHERE resident_id = ?", [resident_id])
