from datetime import timedelta
from fastapi import APIRouter, Depends
from typing import Any

from app.schemas.indent import DashboardSummary
from app.schemas.user import User
from app.api.deps import get_any_user, get_sheet_reader
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.workflow.dashboard import dashboard_cache

router = APIRouter()


@router.get("", response_model=DashboardSummary)
def get_dashboard(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_any_user),
    refresh: bool = False,
) -> Any:
    """
    Counts, chart series and the 6-month trend. Served from the cache unless
    it is empty, older than DASHBOARD_CACHE_MINUTES or a refresh is requested.
    Falls back to sample figures with a warning when the sheet cannot be read.
    """
    summary = None
    if not refresh:
        summary = dashboard_cache.get(max_age=timedelta(minutes=settings.DASHBOARD_CACHE_MINUTES))
    if summary is None:
        summary = dashboard_cache.refresh(reader, settings.SHEET_NAME)
    return summary
