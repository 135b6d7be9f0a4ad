# app/core/scheduler.py

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.sheets.reader import SheetReader
from app.workflow.dashboard import dashboard_cache

logger = logging.getLogger(__name__)

scheduler: Optional[BackgroundScheduler] = None


def refresh_dashboard():
    summary = dashboard_cache.refresh(SheetReader(), settings.SHEET_NAME)
    logger.info(f"Dashboard refreshed ({summary['total_indents']} indents, fallback={summary['is_fallback']})")


def start():
    global scheduler
    if settings.DASHBOARD_REFRESH_MINUTES <= 0 or scheduler is not None:
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(refresh_dashboard, 'interval', minutes=settings.DASHBOARD_REFRESH_MINUTES)
    scheduler.start()
    logger.info(f"Dashboard refresh scheduled every {settings.DASHBOARD_REFRESH_MINUTES} minutes")


def shutdown():
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
