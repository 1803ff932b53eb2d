"""System health endpoints."""

from fastapi import APIRouter, HTTPException, status
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel
import logging
import psutil

from database import get_pool
from ..websockets import manager as websocket_manager

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    boot_time: datetime
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    active_connections: Optional[int] = None
    websocket_connections: int
    database_status: str

@router.get("/health")
async def get_system_health() -> SystemHealth:
    """Get system health status.

    Returns:
        SystemHealth object containing system metrics
    """
    try:
        # Gather system metrics
        cpu_percent = psutil.cpu_percent()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        # Get database status
        active_connections = None
        try:
            pool = await get_pool()
            async with pool.acquire() as conn:
                active_connections = await conn.fetchval(
                    '''
                    SELECT COUNT(*)
                    FROM pg_stat_activity
                    WHERE state = 'active'
                    '''
                )
            db_status = "connected"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_status = "unavailable"

        healthy = cpu_percent < 80 and db_status == "connected"
        return SystemHealth(
            status="healthy" if healthy else "degraded",
            boot_time=datetime.fromtimestamp(psutil.boot_time(), tz=timezone.utc),
            cpu_usage=cpu_percent,
            memory_usage=memory.percent,
            disk_usage=disk.percent,
            active_connections=active_connections,
            websocket_connections=websocket_manager.connection_count(),
            database_status=db_status
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

# Export the router
__all__ = ['router']
