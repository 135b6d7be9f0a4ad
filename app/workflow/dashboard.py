"""
Dashboard aggregation over the maintenance sheet.
"""
import copy
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from app.sheets.columns import Column
from app.sheets.errors import SheetReadError
from app.sheets.reader import SheetReader, SheetRow
from app.utils.dates import parse_sheet_datetime
from app.workflow.stages import is_approved, is_rejected

logger = logging.getLogger(__name__)

TREND_MONTHS = 6
COMPLETED_RESULTS = ("done", "completed")
FALLBACK_WARNING = "Live sheet data is unavailable. Showing sample figures."

# Shown when the sheet cannot be read so the dashboard still renders
MOCK_SUMMARY: Dict[str, Any] = {
    "total_indents": 120,
    "pending_approvals": 35,
    "approved": 45,
    "completed": 42,
    "work_in_progress": 28,
    "inspected": 36,
    "payment_done": 42,
    "bar_data": [
        {"name": "Total", "value": 120},
        {"name": "Pending", "value": 35},
        {"name": "Approved", "value": 45},
        {"name": "Assigned", "value": 25},
    ],
    "pie_data": [
        {"name": "Completed", "value": 42},
        {"name": "In Progress", "value": 28},
        {"name": "Pending", "value": 20},
    ],
    "trend": [
        {"name": "Jan 2025", "month": "2025-01", "completed": 12, "pending": 8},
        {"name": "Feb 2025", "month": "2025-02", "completed": 19, "pending": 12},
        {"name": "Mar 2025", "month": "2025-03", "completed": 25, "pending": 10},
        {"name": "Apr 2025", "month": "2025-04", "completed": 28, "pending": 15},
        {"name": "May 2025", "month": "2025-05", "completed": 35, "pending": 8},
        {"name": "Jun 2025", "month": "2025-06", "completed": 42, "pending": 6},
    ],
}


def month_key(value: datetime) -> str:
    return f"{value.year}-{value.month:02d}"


def month_label(value: datetime) -> str:
    return value.strftime("%b %Y")


def shift_month(value: datetime, months: int) -> datetime:
    index = value.year * 12 + (value.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1)


def _row_created(row: SheetRow) -> Optional[datetime]:
    cell = row.cell(Column.TIMESTAMP)
    parsed = parse_sheet_datetime(cell.value)
    if parsed is None and cell.formatted:
        parsed = parse_sheet_datetime(cell.formatted)
    return parsed


def _is_completed(row: SheetRow) -> bool:
    return row.text(Column.INSPECTION_RESULT).lower() in COMPLETED_RESULTS


def summarize(rows: Iterable[SheetRow], today: Optional[datetime] = None) -> Dict[str, Any]:
    total = pending = approved = completed = in_progress = inspected = paid = 0
    month_counts: Dict[str, Dict[str, int]] = {}
    latest: Optional[datetime] = None

    for row in rows:
        if not row.cells:
            continue

        if row.formatted(Column.TIMESTAMP):
            total += 1

        rejected = is_rejected(row)
        if is_approved(row):
            approved += 1
        else:
            pending += 1

        row_completed = _is_completed(row)
        if row_completed:
            completed += 1
            inspected += 1
        elif not rejected:
            in_progress += 1

        if not row.is_blank(Column.PAYMENT_ACTUAL):
            paid += 1

        created = _row_created(row)
        if created is not None:
            if latest is None or created > latest:
                latest = created
            counts = month_counts.setdefault(month_key(created), {"completed": 0, "pending": 0})
            counts["completed" if row_completed else "pending"] += 1

    assigned = max(0, total - pending - approved)
    reference = latest or today or datetime.now()
    trend = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        month = shift_month(reference, -offset)
        counts = month_counts.get(month_key(month), {"completed": 0, "pending": 0})
        trend.append({
            "name": month_label(month),
            "month": month_key(month),
            "completed": counts["completed"],
            "pending": counts["pending"],
        })

    return {
        "total_indents": total,
        "pending_approvals": pending,
        "approved": approved,
        "completed": completed,
        "work_in_progress": in_progress,
        "inspected": inspected,
        "payment_done": paid,
        "bar_data": [
            {"name": "Total", "value": total},
            {"name": "Pending", "value": pending},
            {"name": "Approved", "value": approved},
            {"name": "Assigned", "value": assigned},
        ],
        "pie_data": [
            {"name": "Completed", "value": completed},
            {"name": "In Progress", "value": max(0, approved - completed)},
            {"name": "Pending", "value": pending},
        ],
        "trend": trend,
    }


def fallback_summary(warning: str = FALLBACK_WARNING) -> Dict[str, Any]:
    summary = copy.deepcopy(MOCK_SUMMARY)
    summary.update({"is_fallback": True, "warning": warning, "generated_at": datetime.now()})
    return summary


def load_summary(reader: SheetReader, sheet_name: str = None) -> Dict[str, Any]:
    """Read the sheet and summarize it; on a read failure return the mock summary."""
    try:
        rows = reader.fetch_rows(sheet_name)
    except SheetReadError as e:
        logger.warning(f"Dashboard falling back to sample data: {e}")
        return fallback_summary()
    summary = summarize(rows)
    summary.update({"is_fallback": False, "warning": None, "generated_at": datetime.now()})
    return summary


class DashboardCache:
    """
    Latest live dashboard summary, shared by requests and the refresh job.
    Sample figures are never stored.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._summary: Optional[Dict[str, Any]] = None

    def get(self, max_age: Optional[timedelta] = None) -> Optional[Dict[str, Any]]:
        """Cached summary, or None when empty or older than max_age."""
        with self._lock:
            summary = self._summary
        if summary is None or max_age is None:
            return summary
        if datetime.now() - summary["generated_at"] > max_age:
            return None
        return summary

    def set(self, summary: Optional[Dict[str, Any]]) -> None:
        with self._lock:
            self._summary = summary

    def clear(self) -> None:
        self.set(None)

    def refresh(self, reader: SheetReader, sheet_name: str = None) -> Dict[str, Any]:
        summary = load_summary(reader, sheet_name)
        if not summary["is_fallback"]:
            self.set(summary)
            return summary

        previous = self.get()
        if previous is None:
            return summary
        logger.info("Serving previous dashboard summary after failed refresh")
        stale = dict(previous)
        stale["warning"] = FALLBACK_WARNING
        return stale


dashboard_cache = DashboardCache()

