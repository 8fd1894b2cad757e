"""
Background removal of soft-deleted rows whose undo window has closed.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from travel_planner.core.config import settings
from travel_planner.core.database import SessionLocal
from travel_planner.services.lifecycle import LifecycleManager, PurgeReport
from travel_planner.services.photo_storage import PhotoStorage
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


def run_purge_sweep(now: Optional[datetime] = None) -> PurgeReport:
    """Run one sweep in its own session."""
    db = SessionLocal()
    try:
        lifecycle = LifecycleManager(EntityStore(db), PhotoStorage(settings.photo_storage_dir))
        return lifecycle.purge_sweep(now)
    finally:
        db.close()


async def run_purge_loop() -> None:
    """Sweep every ``purge_interval_hours`` until cancelled."""
    await asyncio.sleep(settings.purge_initial_delay_seconds)
    interval = settings.purge_interval_hours * 3600

    while True:
        try:
            await asyncio.to_thread(run_purge_sweep)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # One failed sweep must not stop the next one
            logger.error(f"Purge sweep failed: {e}", exc_info=True)
        await asyncio.sleep(interval)
