from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from travel_planner.core.config import settings
from travel_planner.core.database import SessionLocal
from travel_planner.models import Destination
import asyncio
import os
from datetime import datetime
from typing import Dict, Any

router = APIRouter()


def check_database() -> Dict[str, Any]:
    """Check database connectivity and basic operations."""
    try:
        db = SessionLocal()
        try:
            # Test basic connectivity
            db.execute(text("SELECT 1")).fetchone()

            destination_count = db.query(Destination).filter(Destination.is_deleted == False).count()  # noqa: E712

            return {
                "status": "healthy",
                "destination_count": destination_count,
                "timestamp": datetime.now().isoformat()
            }
        finally:
            db.close()
    except SQLAlchemyError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }


def check_photo_storage() -> Dict[str, Any]:
    """Check that the photo directory exists and is writable."""
    directory = settings.photo_storage_dir
    if not os.path.isdir(directory):
        # Created on first upload
        return {"status": "degraded", "error": "Photo directory does not exist yet", "path": directory}
    if not os.access(directory, os.W_OK):
        return {"status": "unhealthy", "error": "Photo directory is not writable", "path": directory}
    return {"status": "healthy", "path": directory}


@router.get("/healthz")
async def health_check():
    """
    Comprehensive health check endpoint.
    Returns 200 if the database is reachable, 503 otherwise.
    """
    db_check, storage_check = await asyncio.gather(
        asyncio.to_thread(check_database),
        asyncio.to_thread(check_photo_storage),
    )

    all_healthy = all(check.get("status") == "healthy" for check in [db_check, storage_check])
    critical_healthy = db_check.get("status") == "healthy"

    overall_status = "healthy" if all_healthy else ("degraded" if critical_healthy else "unhealthy")

    response = {
        "status": overall_status,
        "timestamp": datetime.now().isoformat(),
        "checks": {
            "database": db_check,
            "photo_storage": storage_check
        },
        "version": "1.0.0"
    }

    if overall_status == "unhealthy":
        raise HTTPException(status_code=503, detail=response)

    return response


@router.get("/health")
async def simple_health_check():
    """Simple health check for load balancers."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
