"""
Headcount export
Renders meal analytics as an Excel workbook for the kitchen: a summary sheet
with today and tomorrow counts and the weekly grid.
"""

import io
from typing import Any, Dict

import pandas as pd

from ..models.meal import WEEKDAY_NAMES, WEEKDAYS

SUMMARY_SHEET = "Headcount"
WEEKLY_SHEET = "Weekly"


class ExportService:
    """Analytics to xlsx"""

    def export_analytics_excel(self, analytics: Dict[str, Any]) -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            self._create_summary_sheet(writer, analytics)
            self._create_weekly_sheet(writer, analytics)
        buffer.seek(0)
        return buffer.getvalue()

    def _create_summary_sheet(self, writer, analytics: Dict[str, Any]):
        if not analytics["per_meal"]:
            pd.DataFrame({"Note": ["No meals configured"]}).to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
            return

        today = analytics["today"].isoformat()
        tomorrow = analytics["tomorrow"].isoformat()
        rows = []
        for entry in analytics["per_meal"]:
            rows.append({
                "Meal": entry["meal_name"],
                "Timing": entry["timing"],
                f"Today ({today})": entry["today_count"],
                f"Tomorrow ({tomorrow})": entry["tomorrow_count"],
                "Residents": analytics["total_residents"],
            })
        pd.DataFrame(rows).to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)

    def _create_weekly_sheet(self, writer, analytics: Dict[str, Any]):
        rows = []
        for entry in analytics["per_meal"]:
            row = {"Meal": entry["meal_name"]}
            for weekday in WEEKDAYS:
                cell = entry["weekly"][weekday]
                # blank for weekdays the meal is not served
                row[WEEKDAY_NAMES[weekday]] = cell["opted_count"] if cell["meal_served"] else None
            rows.append(row)
        columns = ["Meal"] + list(WEEKDAY_NAMES)
        pd.DataFrame(rows, columns=columns).to_excel(writer, sheet_name=WEEKLY_SHEET, index=False)
