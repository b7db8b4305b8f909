"""
Scheduled jobs started with the application
"""
import asyncio
from typing import List, Optional

from sqlalchemy import text

from halal_tools.core.config import Settings, get_settings
from halal_tools.core.database import get_session_local
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.services.metal_rate_service import MetalRateService
from halal_tools.services.periodic_task import PeriodicTask

logger = LoggingConfig.get_logger(__name__)


async def refresh_metal_rates() -> None:
    """Append a new spot price snapshot"""
    db = get_session_local()()
    try:
        snapshot = await MetalRateService(db).refresh()
        if snapshot is not None:
            logger.debug(f"Metal rates refreshed (fallback={snapshot.is_fallback})")
    finally:
        db.close()


def _ping_database() -> None:
    db = get_session_local()()
    try:
        db.execute(text("SELECT 1"))
    finally:
        db.close()


async def keep_database_alive() -> None:
    """Keep pooled connections from being dropped by idle timeouts"""
    await asyncio.to_thread(_ping_database)


def build_background_tasks(settings: Optional[Settings] = None) -> List[PeriodicTask]:
    settings = settings or get_settings()
    return [
        PeriodicTask(
            "metal-rate-refresh",
            settings.metal_refresh_interval_seconds,
            refresh_metal_rates,
            run_on_start=settings.metal_refresh_on_startup,
        ),
        PeriodicTask(
            "database-keepalive",
            settings.database_keepalive_seconds,
            keep_database_alive,
        ),
    ]


# Global task list
_background_tasks: List[PeriodicTask] = []


async def start_background_tasks(settings: Optional[Settings] = None) -> List[PeriodicTask]:
    """Create and start all scheduled jobs"""
    global _background_tasks
    if _background_tasks:
        logger.warning("Background tasks are already running")
        return _background_tasks

    _background_tasks = build_background_tasks(settings)
    for task in _background_tasks:
        await task.start()
    return _background_tasks


async def stop_background_tasks() -> None:
    global _background_tasks
    for task in _background_tasks:
        await task.stop()
    _background_tasks = []
